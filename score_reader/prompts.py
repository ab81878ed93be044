"""
Recognition Prompts
Instructions sent to the vision engine for each transcription pass.
"""

SYSTEM_PROMPT = (
    "You are an expert music transcriber. "
    "Return only valid ABC notation without any explanations or markdown formatting."
)


TRANSCRIBE_PROMPT = """You are an expert at reading sheet music and converting it to ABC notation.

Analyze this sheet music image and convert it to valid ABC notation.

## 1. Headers (REQUIRED, in this order)
- X: reference number (use X:1)
- T: title, if one is printed on the page
- M: time signature exactly as printed (e.g. M:4/4, M:3/4, M:6/8, M:C)
- L: default note length (use L:1/8 unless the music is mostly quarter notes or longer, then L:1/4)
- K: key signature, read from the sharps/flats at the start of the staff (e.g. K:G, K:Bb, K:Em)

## 2. Octaves (CRITICAL)
- C D E F G A B = the octave starting at middle C (C4-B4)
- c d e f g a b = the octave above middle C (C5-B5)
- Add ' for each further octave up (c' = C6) and , for each octave down (C, = C3)
- Count ledger lines carefully: a note below the treble staff is usually uppercase or uses ,

## 3. Durations (relative to the L: unit)
- With L:1/8: an eighth note is A, a quarter is A2, a half is A4, a whole is A8, a sixteenth is A/2 (or A/)
- Dotted notes multiply by 1.5: dotted quarter with L:1/8 is A3
- Rests use z with the same duration rules (z2, z4)

## 4. Measures (CRITICAL)
- Separate every measure with |; end the piece with |]
- The durations inside EACH measure must add up to the time signature
  (e.g. with M:4/4 and L:1/8 every full measure sums to 8 units); a pickup measure may be shorter
- Double-check any measure whose total does not match before answering

## 5. Other symbols
- Accidentals: ^ sharp, _ flat, = natural, written before the note (^F, _B)
- Apply the key signature: do NOT repeat accidentals already implied by K:
- Chords: notes in square brackets [CEG]
- Grace notes in braces {g}
- Ties with -, slurs with ( )
- Multiple staves (e.g. piano treble and bass): use V:1 and V:2

Return ONLY valid ABC notation that can be rendered. No explanations, just the ABC code.
If you cannot read parts clearly, make your best musical judgment to fill in reasonable notes.
"""


VERIFY_PROMPT = """You are an expert music proofreader. You are given an ABC transcription of the attached sheet music image.
Compare it note by note against the image and audit it for these specific errors:

1. **Octave errors**: notes written an octave too high or too low (check letter case, ' and ,)
2. **Key signature accidentals**: notes that should be sharp/flat from the key signature but are written
   with the wrong accidental, or accidentals duplicated against K:
3. **Measure durations**: any measure whose note and rest durations do not add up to the M: time signature
   given the L: unit
4. **Missing notes**: notes, rests, chords or whole measures present in the image but absent from the ABC
5. **Misread pitches**: notes placed on the wrong line or space

The current transcription is attached after the image.

If you find errors, return the complete corrected ABC notation.
If the transcription is already correct, return it unchanged.

Return ONLY the ABC notation. No explanations, no lists of changes, no markdown.
"""


RETRY_PROMPT_TEMPLATE = """You are an expert at reading sheet music and converting it to ABC notation.

A previous attempt to transcribe this sheet music image produced ABC notation with critical problems:
{missing_elements}

The previous attempt is attached after the image for reference.

Transcribe the image again from scratch. The output MUST contain:
- X: reference number on the first line (X:1)
- M: time signature as printed on the page
- L: default note length
- K: key signature read from the start of the staff, as the LAST header line
- The actual notes of the music after the headers, measure by measure, separated by |

Use uppercase letters for the octave starting at middle C and lowercase for the octave above.
Make every measure's durations add up to the time signature.

Return ONLY valid ABC notation. No explanations, just the ABC code.
"""


def build_retry_prompt(critical_errors: list[str]) -> str:
    """Retry instruction restating what the earlier passes left out."""
    missing = "\n".join(f"- {error}" for error in critical_errors)
    return RETRY_PROMPT_TEMPLATE.format(missing_elements=missing)

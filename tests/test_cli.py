import pytest
from typer.testing import CliRunner

import main
from score_reader.errors import GENERIC_USER_MESSAGE


runner = CliRunner()


@pytest.fixture
def tune_file(tmp_path):
    path = tmp_path / "tune.abc"
    path.write_text("```abc\nT:Reel\nM:4/4\nK:D\n[DF A2 {g}f2|\n```", encoding="utf-8")
    return path


def test_repair_prints_fixed_notation(tune_file):
    result = runner.invoke(main.app, ["repair", str(tune_file)])

    assert result.exit_code == 0
    assert "X:1\nT:Reel\nM:4/4\nK:D\n[DF A2 {g}f2|]" in result.output
    assert "2 fix(es) applied" in result.output


def test_repair_in_place(tune_file):
    result = runner.invoke(main.app, ["repair", str(tune_file), "--in-place"])

    assert result.exit_code == 0
    assert tune_file.read_text(encoding="utf-8") == "X:1\nT:Reel\nM:4/4\nK:D\n[DF A2 {g}f2|]\n"

    again = runner.invoke(main.app, ["repair", str(tune_file)])
    assert "No structural problems found" in again.output


def test_quick_assess_rejects_tiny_image(tmp_path, image_bytes):
    path = tmp_path / "tiny.png"
    path.write_bytes(image_bytes(150, 150, color=(255, 255, 255)))

    result = runner.invoke(main.app, ["assess", str(path), "--quick"])

    assert result.exit_code == 2
    assert "Image resolution is low" in result.output


def test_assess_reports_unreadable_image(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"not really a png")

    result = runner.invoke(main.app, ["assess", str(path)])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "could not be read as an image" in result.output
    assert "Unreadable image data" not in result.output


@pytest.mark.parametrize("failing_pass", [1, 2])
def test_transcribe_hides_engine_failure_detail(
    tmp_path, monkeypatch, scripted_engine, image_bytes, staff_like_rgb, good_tune, failing_pass
):
    script = [good_tune, good_tune]
    script[failing_pass - 1] = ConnectionError("secret-upstream-detail")
    monkeypatch.setattr(main, "build_engine", lambda backend: scripted_engine(*script))
    image = tmp_path / "page.png"
    image.write_bytes(image_bytes(array=staff_like_rgb))

    result = runner.invoke(main.app, ["transcribe", str(image), "--backend", "gemini"])

    assert result.exit_code == 1
    assert "secret-upstream-detail" not in result.output
    assert "Failed to read sheet music from image" in result.output


def test_transcribe_writes_abc_file(tmp_path, monkeypatch, scripted_engine, image_bytes, staff_like_rgb, good_tune):
    monkeypatch.setattr(main, "build_engine", lambda backend: scripted_engine(good_tune, good_tune))
    image = tmp_path / "page.png"
    image.write_bytes(image_bytes(array=staff_like_rgb))
    output = tmp_path / "out" / "page.abc"

    result = runner.invoke(
        main.app,
        ["transcribe", str(image), "--backend", "gemini", "--output", str(output), "--json"],
    )

    assert result.exit_code == 0, result.output
    assert output.read_text(encoding="utf-8") == good_tune + "\n"


def test_transcribe_reports_empty_engine(tmp_path, monkeypatch, scripted_engine, image_bytes, staff_like_rgb):
    monkeypatch.setattr(main, "build_engine", lambda backend: scripted_engine(""))
    image = tmp_path / "page.png"
    image.write_bytes(image_bytes(array=staff_like_rgb))

    result = runner.invoke(main.app, ["transcribe", str(image), "--backend", "gemini"])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert GENERIC_USER_MESSAGE.split(". ")[0] in result.output


def test_version():
    result = runner.invoke(main.app, ["version"])
    assert result.exit_code == 0
    assert "Score Reader" in result.output

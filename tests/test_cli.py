"""环节四：命令行入口。"""

from __future__ import annotations

import zipfile
from pathlib import Path

from PIL import Image
from typer.testing import CliRunner

from canvas_bridge.cli.main import app

runner = CliRunner()


def _prepare_sources(tmp_path: Path) -> Path:
    source = tmp_path / "input"
    source.mkdir()
    Image.new("RGB", (40, 40), "blue").save(source / "one.png")
    Image.new("RGB", (30, 60), "red").save(source / "two.jpg")
    (source / "broken.png").write_text("not an image")
    (source / "readme.txt").write_text("ignored")
    return source


def test_convert_multiple_files_writes_archive_and_report(tmp_path: Path) -> None:
    source = _prepare_sources(tmp_path)
    output = tmp_path / "out"

    result = runner.invoke(
        app,
        ["convert", str(source), "--mode", "ico", "--icon-size", "64", "-o", str(output), "--report", "queue.csv"],
    )

    assert result.exit_code == 0, result.output
    archive_path = output / "ico-icons.zip"
    assert archive_path.exists()
    with zipfile.ZipFile(archive_path) as archive:
        assert sorted(archive.namelist()) == ["one.ico", "two.ico"]
    assert (output / "queue.csv").exists()
    assert "失败 1 个" in result.output


def test_convert_single_file_and_inspect(tmp_path: Path) -> None:
    image_path = tmp_path / "single.png"
    Image.new("RGBA", (20, 20), (0, 255, 0, 255)).save(image_path)
    output = tmp_path / "out"

    result = runner.invoke(app, ["convert", str(image_path), "--mode", "ico", "--icon-size", "32", "-o", str(output)])

    assert result.exit_code == 0, result.output
    icon_path = output / "single.ico"
    assert icon_path.exists()

    inspected = runner.invoke(app, ["inspect-ico", str(icon_path)])
    assert inspected.exit_code == 0, inspected.output
    assert "32x32" in inspected.output


def test_convert_rejects_invalid_quality(tmp_path: Path) -> None:
    source = _prepare_sources(tmp_path)

    result = runner.invoke(app, ["convert", str(source), "--quality", "0.2", "-o", str(tmp_path / "out")])

    assert result.exit_code != 0


def test_inspect_rejects_non_icon(tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.ico"
    bogus.write_bytes(b"definitely not an icon file")

    result = runner.invoke(app, ["inspect-ico", str(bogus)])

    assert result.exit_code == 1

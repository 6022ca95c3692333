"""
Tests for render_halftone.py - Command Line Entry Point

Runs main() against temporary files and checks exit codes and outputs.
"""

import pytest
from pathlib import Path
from PIL import Image
from halftone_types import HalftoneConfig
from render_halftone import build_parser, build_config, default_output_path, main


@pytest.fixture
def white_image(tmp_path):
    path = tmp_path / "photo.png"
    Image.new('RGB', (30, 20), (255, 255, 255)).save(path)
    return path


class TestBuildConfig:
    """Test defaults → YAML → flags precedence"""

    def test_defaults(self):
        args = build_parser().parse_args(["in.png"])

        assert build_config(args) == HalftoneConfig()

    def test_flags(self):
        args = build_parser().parse_args([
            "in.png", "--grid-size", "6", "--dot-scale", "1.5", "--gradient",
            "--start-color", "#ff0000", "--end-color", "00f", "--gradient-angle", "45"
        ])

        assert build_config(args) == HalftoneConfig(6, 1.5, True, (255, 0, 0), (0, 0, 255), 45)

    def test_flags_override_yaml(self, tmp_path):
        config_path = tmp_path / "c.yaml"
        config_path.write_text("grid_size: 12\ndot_scale: 0.5\n")
        args = build_parser().parse_args(["in.png", "--config", str(config_path), "--grid-size", "8"])

        config = build_config(args)

        assert config.grid_size == 8
        assert config.dot_scale == 0.5

    def test_out_of_range_flag(self):
        args = build_parser().parse_args(["in.png", "--grid-size", "40"])

        with pytest.raises(ValueError):
            build_config(args)


class TestDefaultOutputPath:
    def test_image(self):
        assert default_output_path(Path("a/photo.jpg"), False) == Path("a/photo_halftone.png")

    def test_video(self):
        assert default_output_path(Path("clip.mov"), True) == Path("clip_halftone.mp4")


class TestMain:
    """Test the CLI end to end on images"""

    def test_renders_image(self, white_image, tmp_path):
        output = tmp_path / "out.png"

        assert main([str(white_image), "-o", str(output), "--quiet"]) == 0

        with Image.open(output) as img:
            assert img.size == (30, 20)
            assert img.getpixel((5, 5)) == (255, 255, 255)

    def test_default_output_location(self, white_image):
        assert main([str(white_image), "--quiet"]) == 0

        assert (white_image.parent / "photo_halftone.png").exists()

    def test_gradient_flags(self, white_image, tmp_path):
        output = tmp_path / "out.png"

        code = main([str(white_image), "-o", str(output), "--quiet", "--gradient",
                     "--start-color", "#00ff00", "--end-color", "#0000ff"])

        assert code == 0
        with Image.open(output) as img:
            assert img.getpixel((5, 5)) == (0, 255, 0)

    def test_missing_input(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.png")]) == 1
        assert "ERROR" in capsys.readouterr().out

    def test_unsupported_file(self, tmp_path, capsys):
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        assert main([str(path)]) == 1
        assert "Not an image or video" in capsys.readouterr().out

    def test_bad_color(self, white_image, capsys):
        assert main([str(white_image), "--start-color", "#xyz123"]) == 1
        assert "ERROR" in capsys.readouterr().out

    def test_missing_config_file(self, white_image, tmp_path):
        assert main([str(white_image), "--config", str(tmp_path / "nope.yaml")]) == 1

    def test_undecodable_image(self, tmp_path, capsys):
        path = tmp_path / "broken.png"
        path.write_bytes(b"garbage")

        assert main([str(path)]) == 1
        assert "ERROR" in capsys.readouterr().out

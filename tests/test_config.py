"""Unit tests for spu2srt.config: mask patterns, run configuration, tool lookup."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from spu2srt.config import MaskPattern, RunConfig, default_work_dir, get_tool
from spu2srt.errors import ConfigurationError


class TestMaskPattern:
    def test_parse_one_hot(self):
        assert MaskPattern.parse("0010").bits == (0, 0, 1, 0)

    def test_str_round_trips_bit_string(self):
        assert str(MaskPattern.parse("0100")) == "0100"

    @pytest.mark.parametrize("text", ["0000", "0011", "1111", "01a0", "", "  "])
    def test_parse_rejects_non_one_hot(self, text):
        with pytest.raises(ConfigurationError):
            MaskPattern.parse(text)

    def test_one_hot_enumerates_canonical_patterns(self):
        assert [str(p) for p in MaskPattern.one_hot(4)] == ["1000", "0100", "0010", "0001"]

    def test_len(self):
        assert len(MaskPattern.parse("00001")) == 5


class TestRunConfig:
    def test_defaults(self):
        config = RunConfig()
        assert config.language == "eng"
        assert config.only_forced is False
        assert config.mask is None
        assert config.untidy is False

    def test_mask_string_is_parsed(self):
        config = RunConfig(mask="0001")
        assert config.mask == MaskPattern((0, 0, 0, 1))

    def test_bad_mask_raises_configuration_error(self):
        with pytest.raises(ConfigurationError):
            RunConfig(mask="0110")

    def test_multi_language(self):
        assert RunConfig(language="eng+fra").language == "eng+fra"

    @pytest.mark.parametrize("language", ["", "en", "eng fra", "ENG"])
    def test_bad_language(self, language):
        with pytest.raises(ValidationError):
            RunConfig(language=language)

    def test_frozen(self):
        config = RunConfig()
        with pytest.raises(ValidationError):
            config.language = "deu"


class TestToolsAndPaths:
    def test_get_tool_default(self, monkeypatch):
        monkeypatch.delenv("SPU2SRT_TESSERACT", raising=False)
        assert get_tool("tesseract") == "tesseract"

    def test_get_tool_env_override(self, monkeypatch):
        monkeypatch.setenv("SPU2SRT_TESSERACT", "/opt/tess/bin/tesseract")
        assert get_tool("tesseract") == "/opt/tess/bin/tesseract"

    def test_default_work_dir_from_source(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert default_work_dir(Path("/media/MOVIE.iso"), None) == tmp_path / "MOVIE_spu2srt_work"

    def test_default_work_dir_from_index(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert default_work_dir(None, Path("subs/sub.xml")) == tmp_path / "sub_spu2srt_work"

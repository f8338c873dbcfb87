"""
Tests for Language Detection

Covers the "already English?" gate used before translation and the
language tag recorded on normalised messages.
"""

import pytest


class TestLooksLikeEnglish:
    """Tests for the ASCII-ratio + common-word test"""

    def test_plain_request_is_english(self):
        from workboard.common.language import looks_like_english

        assert looks_like_english("Can you review the launch deck today please") is True

    def test_tagalog_request_is_not_english(self):
        from workboard.common.language import looks_like_english

        assert looks_like_english("Pakisuyo i-check mo yung report bago mag lunch") is False

    def test_text_without_latin_words_counts_as_english(self):
        from workboard.common.language import looks_like_english

        # Nothing for the word test to judge, so no translation call
        assert looks_like_english("보고서 검토 부탁드립니다") is True
        assert looks_like_english(":+1: 123") is True

    def test_empty_text_is_english(self):
        from workboard.common.language import looks_like_english

        assert looks_like_english("") is True

    def test_needs_at_least_two_hits(self):
        from workboard.common.language import looks_like_english

        # One common word is never enough
        assert looks_like_english("the kubernetes") is False
        assert looks_like_english("the deploy") is True

    def test_low_ascii_ratio_is_not_english(self):
        from workboard.common.language import looks_like_english

        text = "please review the 보고서를 오늘까지 꼭 확인해주세요"
        assert looks_like_english(text) is False


class TestLanguageInfo:
    def test_is_english(self):
        from workboard.common.language import LanguageInfo

        assert LanguageInfo(code="en", confidence=0.9, script="Latin").is_english is True
        assert LanguageInfo(code="tl", confidence=0.8, script="Latin").is_english is False

    def test_frozen(self):
        from workboard.common.language import LanguageInfo

        info = LanguageInfo(code="en", confidence=1.0, script="Latin")
        with pytest.raises(AttributeError):
            info.code = "ko"


class TestDetectLanguage:
    def test_english_sentence(self):
        from workboard.common.language import detect_language

        result = detect_language("Please send me the quarterly adoption numbers before the sync")

        assert result.code == "en"
        assert 0.0 < result.confidence <= 1.0

    def test_korean_sentence(self):
        from workboard.common.language import detect_language

        result = detect_language("오늘 회의 전에 자동화 제안서를 검토해 주실 수 있나요?")

        assert result.code == "ko"
        assert result.script == "Hangul"

    def test_short_text_uses_script(self):
        from workboard.common.language import detect_language

        result = detect_language("검토요")

        assert result.code == "ko"
        assert result.script == "Hangul"

    def test_short_latin_text_defaults_to_english(self):
        from workboard.common.language import detect_language

        result = detect_language("ok po")
        assert result.code == "en"

    def test_empty_and_none(self):
        from workboard.common.language import detect_language

        assert detect_language("").code == "en"
        assert detect_language("   ").code == "en"
        assert detect_language(None).code == "en"


class TestDetectScript:
    def test_kana_wins_over_kanji(self):
        from workboard.common.language import _detect_script

        script, lang = _detect_script("資料を確認してください")

        assert script == "Kana"
        assert lang == "ja"

    def test_latin_text(self):
        from workboard.common.language import _detect_script

        assert _detect_script("Draft the weekly update") == ("Latin", None)

"""Tests for message normalisation and translation."""

import json

import httpx
import pytest
from unittest.mock import MagicMock


class TestMarkup:
    def test_decode_markup(self):
        from workboard.sync.normalizer import decode_markup

        raw = "<@U07ABC123> see <#C0123|ai-enablement> and <https://x.io/doc|the doc> or <https://x.io>"
        assert decode_markup(raw) == "@U07ABC123 see #ai-enablement and the doc or https://x.io"

    def test_extract_mentioned_user_ids(self):
        from workboard.sync.normalizer import extract_mentioned_user_ids

        text = "<@u07abc123> and <@W999ZZZ|maria> but not <#C123|general>"
        assert extract_mentioned_user_ids(text) == ["U07ABC123", "W999ZZZ"]

    def test_compact_text(self):
        from workboard.sync.normalizer import compact_text

        assert compact_text("  a\n\tb   c ") == "a b c"


class TestGlossary:
    def test_tagalog_terms(self):
        from workboard.sync.normalizer import apply_glossary

        assert apply_glossary("Paki pa-review ngayon, salamat") == "please review today, thanks"

    def test_word_boundaries(self):
        from workboard.sync.normalizer import apply_glossary

        # "agad" inside a longer word stays untouched
        assert apply_glossary("agadagad agad") == "agadagad immediately"

    def test_hyphen_optional(self):
        from workboard.sync.normalizer import apply_glossary

        assert apply_glossary("pareview paapprove pa-update") == "review approve update"


class TestMessageNormalizer:
    def test_english_text_skips_translator(self):
        from workboard.sync.normalizer import MessageNormalizer

        translator = MagicMock()
        normalizer = MessageNormalizer(translator)

        result = normalizer.normalize("<@U1> can you review the deck for today")

        assert result.text == "@U1 can you review the deck for today"
        assert result.translated is False
        assert result.changed is False
        translator.translate.assert_not_called()

    def test_non_english_text_is_translated(self):
        from workboard.sync.normalizer import MessageNormalizer

        translator = MagicMock()
        translator.translate.return_value = "Please check the report before lunch"
        normalizer = MessageNormalizer(translator)

        result = normalizer.normalize("Pakisuyo i-check mo yung report bago mag lunch")

        translator.translate.assert_called_once_with("please i-check mo yung report bago mag lunch")
        assert result.text == "Please check the report before lunch"
        assert result.translated is True
        assert result.original == "Pakisuyo i-check mo yung report bago mag lunch"
        assert result.language is not None

    def test_translator_failure_keeps_glossary_text(self, caplog):
        import logging
        from workboard.sync.normalizer import MessageNormalizer

        translator = MagicMock()
        translator.translate.side_effect = RuntimeError("boom")
        normalizer = MessageNormalizer(translator)

        with caplog.at_level(logging.WARNING, logger="workboard.sync.normalizer"):
            result = normalizer.normalize("Paki ayusin yung dashboard mamaya")

        assert result.text == "please ayusin yung dashboard later"
        assert result.translated is False
        assert "Translator raised" in caplog.text

    def test_results_are_cached(self):
        from workboard.sync.normalizer import MessageNormalizer

        translator = MagicMock()
        translator.translate.return_value = "Fix the dashboard later"
        normalizer = MessageNormalizer(translator)

        first = normalizer.normalize("Paki ayusin yung dashboard mamaya")
        second = normalizer.normalize("Paki   ayusin yung dashboard mamaya")

        assert first is second
        assert translator.translate.call_count == 1
        assert normalizer.cache_size == 1

    def test_close_closes_translator(self):
        from unittest.mock import MagicMock
        from workboard.sync.normalizer import MessageNormalizer

        translator = MagicMock()
        MessageNormalizer(translator).close()

        translator.close.assert_called_once_with()

    def test_empty_text(self):
        from workboard.sync.normalizer import MessageNormalizer

        result = MessageNormalizer().normalize("   ")
        assert result.text == ""


class TestHttpTranslator:
    def _translator(self, handler, api_key=""):
        from workboard.sync.normalizer import HttpTranslator

        return HttpTranslator(
            "https://translate.example/translate",
            api_key=api_key,
            transport=httpx.MockTransport(handler),
        )

    def test_libretranslate_request_and_response(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["key"] = request.headers.get("x-api-key")
            return httpx.Response(200, json={"translatedText": "  Please   check it "})

        out = self._translator(handler, api_key="k-1").translate("paki check")

        assert out == "Please check it"
        assert seen["body"] == {
            "q": "paki check",
            "source": "auto",
            "target": "en",
            "format": "text",
            "api_key": "k-1",
        }
        assert seen["key"] == "k-1"

    def test_no_key_sends_no_key(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["key"] = request.headers.get("x-api-key")
            return httpx.Response(200, json={"translation": "ok then"})

        assert self._translator(handler).translate("sige") == "ok then"
        assert "api_key" not in seen["body"]
        assert seen["key"] is None

    def test_google_style_payload(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"translations": [{"translatedText": "Send it"}]}})

        assert self._translator(handler).translate("ipadala") == "Send it"

    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"error": "down"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"unexpected": True}),
    ])
    def test_bad_responses_return_none(self, response):
        assert self._translator(lambda request: response).translate("x") is None

    def test_timeout_returns_none(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        assert self._translator(handler).translate("x") is None

    def test_close_releases_http_client(self):
        translator = self._translator(lambda request: httpx.Response(200, json={}))
        translator.close()

        assert translator._http.is_closed


class TestBuildTranslator:
    def test_unconfigured_is_null(self):
        from workboard.common.config import TranslationConfig
        from workboard.sync.normalizer import NullTranslator, build_translator

        translator = build_translator(TranslationConfig())
        assert isinstance(translator, NullTranslator)
        assert translator.translate("anything") is None

    def test_configured_is_http(self):
        from workboard.common.config import TranslationConfig
        from workboard.sync.normalizer import HttpTranslator, build_translator

        translator = build_translator(TranslationConfig(api_url="https://t.example"))
        assert isinstance(translator, HttpTranslator)

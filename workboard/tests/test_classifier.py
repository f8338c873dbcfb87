"""
Tests for the actionability classifiers.

LLMTaskClassifier is exercised against a mocked LLMClient; the heuristic
classifier runs as-is.
"""

import pytest
from unittest.mock import MagicMock


def _llm(response=None, available=True, side_effect=None):
    client = MagicMock()
    client.is_available = available
    client.generate.return_value = response
    if side_effect is not None:
        client.generate.side_effect = side_effect
    return client


class TestBuildTaskTitle:
    def test_strips_prefixes_mentions_and_thanks(self):
        from workboard.sync.classifier import build_task_title

        text = "RE: [ops] @U07ABC123 please update the rollout checklist. Thanks!"
        assert build_task_title(text) == "Update the rollout checklist"

    def test_strips_markdown(self):
        from workboard.sync.classifier import build_task_title

        assert build_task_title("Can you *approve* the `vendor` contract?") == "Approve the vendor contract"

    def test_first_clause_only(self):
        from workboard.sync.classifier import build_task_title

        assert build_task_title("need to ship the hotfix; then update docs") == "Ship the hotfix"

    def test_long_title_is_cut(self):
        from workboard.sync.classifier import build_task_title

        title = build_task_title("review " + "x" * 200)
        assert len(title) == 120
        assert title.endswith("...")

    def test_empty(self):
        from workboard.sync.classifier import build_task_title

        assert build_task_title("") == ""
        assert build_task_title("   ") == ""


class TestClassificationResult:
    def test_failed_is_conservative(self):
        from workboard.sync.classifier import ClassificationResult

        result = ClassificationResult.failed()
        assert result.is_task is False
        assert result.task_title == ""
        assert result.confidence == 0.0
        assert result.reason == "classification failed"


class TestLLMTaskClassifier:
    def test_parses_task(self):
        from workboard.sync.classifier import ClassificationContext, LLMTaskClassifier

        llm = _llm('{"isTask": true, "taskTitle": "Review automation proposal", "confidence": 85, "reason": "direct ask"}')
        result = LLMTaskClassifier(llm).classify(
            "Can you review the automation proposal?",
            ClassificationContext(is_mention=True),
        )

        assert result.is_task is True
        assert result.task_title == "Review automation proposal"
        assert result.confidence == pytest.approx(0.85)
        assert result.reason == "direct ask"

    def test_prompt_carries_context(self):
        from workboard.sync.classifier import ClassificationContext, LLMTaskClassifier, SYSTEM_PROMPT

        llm = _llm('{"isTask": false, "taskTitle": "", "confidence": 10, "reason": "fyi"}')
        LLMTaskClassifier(llm).classify(
            "FYI the office is closed",
            ClassificationContext(is_direct_message=True, sender_name="Maria"),
        )

        prompt = llm.generate.call_args.args[0]
        kwargs = llm.generate.call_args.kwargs
        assert 'Message: "FYI the office is closed"' in prompt
        assert "Context: Direct message from Maria" in prompt
        assert kwargs["system"] == SYSTEM_PROMPT
        assert kwargs["json_mode"] is True

    def test_confidence_clamped(self):
        from workboard.sync.classifier import ClassificationContext, LLMTaskClassifier

        llm = _llm('{"isTask": true, "taskTitle": "Send the budget", "confidence": 180, "reason": ""}')
        result = LLMTaskClassifier(llm).classify("send it", ClassificationContext(is_mention=True))
        assert result.confidence == 1.0

    def test_confidence_is_a_percentage(self):
        from workboard.sync.classifier import ClassificationContext, LLMTaskClassifier

        llm = _llm('{"isTask": true, "taskTitle": "Send the budget", "confidence": 1, "reason": "unsure"}')
        result = LLMTaskClassifier(llm).classify("send it", ClassificationContext(is_mention=True))
        assert result.confidence == pytest.approx(0.01)

    def test_exception_returns_failed(self, caplog):
        import logging
        from workboard.sync.classifier import ClassificationContext, ClassificationResult, LLMTaskClassifier

        llm = _llm(side_effect=TimeoutError("slow"))
        with caplog.at_level(logging.WARNING, logger="workboard.sync.classifier"):
            result = LLMTaskClassifier(llm).classify("x", ClassificationContext(is_mention=True))

        assert result == ClassificationResult.failed()
        assert "Task classification failed" in caplog.text

    @pytest.mark.parametrize("raw", ["", "no json here", '{"reason": "missing isTask"}', "[1, 2]"])
    def test_unusable_answers_return_failed(self, raw):
        from workboard.sync.classifier import ClassificationContext, ClassificationResult, LLMTaskClassifier

        result = LLMTaskClassifier(_llm(raw)).classify("x", ClassificationContext(is_mention=True))
        assert result == ClassificationResult.failed()

    def test_unavailable_client_returns_failed(self):
        from workboard.sync.classifier import ClassificationContext, ClassificationResult, LLMTaskClassifier

        llm = _llm(available=False)
        result = LLMTaskClassifier(llm).classify("x", ClassificationContext(is_mention=True))

        assert result == ClassificationResult.failed()
        llm.generate.assert_not_called()


class TestHeuristicTaskClassifier:
    def _classify(self, text, **context):
        from workboard.sync.classifier import ClassificationContext, HeuristicTaskClassifier

        return HeuristicTaskClassifier().classify(text, ClassificationContext(**context))

    def test_explicit_request_is_task(self):
        result = self._classify("Can you review the automation proposal before Friday?", is_mention=True)

        assert result.is_task is True
        assert result.task_title == "Review the automation proposal before Friday"
        assert result.confidence == 0.85
        assert result.reason == "explicit request"

    def test_requires_dm_or_mention(self):
        result = self._classify("Can you review the automation proposal before Friday?")
        assert result.is_task is False
        assert result.reason == "not DM/mention"

    @pytest.mark.parametrize("text,reason", [
        ("please do it", "too short"),
        ("Hi team, hope everyone had a great weekend!", "greeting"),
        ("thanks for the update on the rollout plan yesterday", "acknowledgment"),
        ("I have a question about the new expense policy rules", "statement not request"),
        ("The deployment pipeline is green again after the fix", "no explicit request"),
    ])
    def test_rejections(self, text, reason):
        result = self._classify(text, is_direct_message=True)
        assert result.is_task is False
        assert result.reason == reason

    def test_flagged_statement_is_accepted(self):
        result = self._classify(
            "The deployment pipeline is blocking the release train",
            is_direct_message=True,
            is_flagged=True,
        )
        assert result.is_task is True
        assert result.reason == "urgent request"


class TestBuildClassifier:
    def test_without_key_uses_heuristic(self):
        from workboard.common.config import LLMConfig
        from workboard.sync.classifier import HeuristicTaskClassifier, build_classifier

        assert isinstance(build_classifier(LLMConfig()), HeuristicTaskClassifier)

    def test_available_client_uses_llm(self):
        from workboard.common.config import LLMConfig
        from workboard.sync.classifier import LLMTaskClassifier, build_classifier

        classifier = build_classifier(LLMConfig(), llm_client=_llm("{}"))
        assert isinstance(classifier, LLMTaskClassifier)

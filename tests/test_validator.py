from __future__ import annotations

import asyncio
from datetime import date

from agents.validator import ValidationRequest, ValidatorAgent, build_validation_prompt
from config import Config
from models.notice import NoticeItem
from models.verification import AiDecision, OfficialVerification

PRIMARY = "google-gla:gemini-2.5-pro"
FALLBACK = "google-gla:gemini-2.5-flash"


def _request(candidates: int = 6) -> ValidationRequest:
    return ValidationRequest(
        exam_name="Demo Exam",
        verification=OfficialVerification(
            is_open=True,
            last_date="30/11/2099",
            evidence=["Official page indicates application/registration is open."],
            text_sample="Registration open. Last date 30/11/2099",
        ),
        official_info_url="https://demo.example/info",
        official_apply_url="https://demo.example/apply",
        candidates=[
            NoticeItem(
                title=f"Notice {i}",
                link=f"https://news.example.com/{i}",
                summary=f"Summary {i}" if i % 2 else None,
                form_close_date="30/11/2099" if i == 0 else None,
            )
            for i in range(candidates)
        ],
    )


def _config() -> Config:
    return Config(gemini_api_key="test-key", validator_model=PRIMARY, validator_fallback_model=FALLBACK)


def test_prompt_carries_program_context_and_first_four_candidates() -> None:
    prompt = build_validation_prompt(_request(), today=date(2099, 1, 2))

    assert "Today's date: 2099-01-02" in prompt
    assert "Exam: Demo Exam" in prompt
    assert "https://demo.example/info" in prompt
    assert "https://demo.example/apply" in prompt
    assert "Official page indicates application/registration is open." in prompt
    assert "Registration open. Last date 30/11/2099" in prompt
    assert "1. Notice 0" in prompt
    assert "4. Notice 3" in prompt
    assert "Notice 4" not in prompt
    assert "lastDate=30/11/2099" in prompt
    assert "summary=n/a" in prompt


def test_prompt_without_candidates_or_evidence() -> None:
    request = ValidationRequest(
        exam_name="Demo Exam",
        verification=OfficialVerification(is_open=True),
        official_info_url="https://demo.example/info",
        official_apply_url="https://demo.example/apply",
    )

    prompt = build_validation_prompt(request)

    assert "No feed candidates." in prompt
    assert "No explicit evidence extracted." in prompt


def test_validator_enabled_only_with_credential() -> None:
    assert ValidatorAgent(Config(gemini_api_key="")).enabled is False
    assert ValidatorAgent(Config(gemini_api_key="key")).enabled is True


def test_primary_success_skips_fallback() -> None:
    calls: list[str] = []
    decision = AiDecision(include=True, confidence=0.9, reasoning="Portal is live.")

    async def submit(model: str, prompt: str) -> AiDecision:
        calls.append(model)
        return decision

    result = asyncio.run(ValidatorAgent(_config(), submit=submit).validate(_request()))

    assert result == decision
    assert calls == [PRIMARY]


def test_primary_failure_falls_back_once() -> None:
    calls: list[str] = []
    decision = AiDecision(include=False, confidence=0.8, reasoning="Deadline passed.")

    async def submit(model: str, prompt: str) -> AiDecision:
        calls.append(model)
        if model == PRIMARY:
            raise RuntimeError("quota exceeded")
        return decision

    result = asyncio.run(ValidatorAgent(_config(), submit=submit).validate(_request()))

    assert result == decision
    assert calls == [PRIMARY, FALLBACK]


def test_empty_primary_output_counts_as_failure() -> None:
    calls: list[str] = []
    decision = AiDecision(include=True, confidence=0.75)

    async def submit(model: str, prompt: str) -> AiDecision | None:
        calls.append(model)
        return None if model == PRIMARY else decision

    result = asyncio.run(ValidatorAgent(_config(), submit=submit).validate(_request()))

    assert result == decision
    assert calls == [PRIMARY, FALLBACK]


def test_both_models_failing_yields_no_opinion() -> None:
    async def submit(model: str, prompt: str) -> AiDecision:
        raise TimeoutError("model timed out")

    result = asyncio.run(ValidatorAgent(_config(), submit=submit).validate(_request()))

    assert result is None


def test_missing_fallback_model_means_single_attempt() -> None:
    calls: list[str] = []

    async def submit(model: str, prompt: str) -> AiDecision | None:
        calls.append(model)
        return None

    config = Config(gemini_api_key="key", validator_model=PRIMARY, validator_fallback_model="")
    result = asyncio.run(ValidatorAgent(config, submit=submit).validate(_request()))

    assert result is None
    assert calls == [PRIMARY]

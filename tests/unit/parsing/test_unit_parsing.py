# tests/unit/parsing/test_unit_parsing.py — v2
"""Tests for parsing/ — JSON location, payload normalization, repair cascade."""

from __future__ import annotations

import json

import pytest

from actionextractor.core.errors import AIProviderError, ErrorKind, InvalidModelOutputError
from actionextractor.core.models import ExtractionMode
from actionextractor.llm.orchestrator import AIOrchestrator, ai_retry_policy
from actionextractor.parsing.json_extract import (
    ParseFailure,
    load_json_object,
    locate_json_object,
    strip_code_fences,
)
from actionextractor.parsing.repair_cascade import RepairCascade
from actionextractor.parsing.result_parser import normalize_difficulty, parse_model_output
from actionextractor.tracking.call_logger import CallLogger
from fakes import VALID_OUTPUT, ScriptedLLMClient, StatusError, model_payload

MODE = ExtractionMode.ACTION_PLAN


class TestJsonExtract:
    def test_strip_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_locate_with_prose(self):
        text = 'Here is the plan: {"a": {"b": 2}} hope it helps'
        assert locate_json_object(text) == '{"a": {"b": 2}}'

    def test_locate_absent(self):
        assert locate_json_object("no braces here") is None
        assert locate_json_object("} backwards {") is None

    def test_trailing_commas_tolerated(self):
        assert load_json_object('{"items": ["a", "b",],}') == {"items": ["a", "b"]}

    def test_truncated_raises(self):
        with pytest.raises(ParseFailure):
            load_json_object('{"objective": "x", "phases": [')

    def test_array_is_not_object(self):
        with pytest.raises(ParseFailure):
            load_json_object("[1, 2]")


class TestResultParser:
    def test_valid_output(self):
        result = parse_model_output(VALID_OUTPUT, MODE, "es", word_count=1500)
        assert result.objective == "Organizar la semana de trabajo"
        assert [p.title for p in result.phases] == ["Capturar", "Planificar"]
        assert result.pro_tip == "Revisa la lista cada viernes"
        assert result.metadata.difficulty == "Fácil"
        assert result.metadata.original_time == "10m"
        assert result.metadata.saved_time == "7m"

    def test_fenced_output(self):
        result = parse_model_output(f"```json\n{VALID_OUTPUT}\n```", MODE, "es", word_count=0)
        assert len(result.phases) == 2

    def test_snake_case_keys(self):
        payload = model_payload(pro_tip="Tip", metadata={"reading_time": "5 min"})
        del payload["proTip"]
        result = parse_model_output(json.dumps(payload), MODE, "en", word_count=0)
        assert result.pro_tip == "Tip"
        assert result.metadata.reading_time == "5 min"

    def test_missing_fields_get_defaults(self):
        text = json.dumps({"phases": [{"title": "Only", "items": ["one"]}]})
        result = parse_model_output(text, MODE, "en", word_count=0)
        assert result.objective == ""
        assert result.pro_tip == ""
        assert result.metadata.reading_time == "3 min"
        assert result.metadata.difficulty == "Medium"
        assert result.phases[0].id == 1

    def test_phase_coercion(self):
        text = json.dumps({"phases": [
            {"id": "2", "title": " Setup ", "items": ["a", "", 3, " b "]},
            "garbage",
            {"title": "", "items": []},
            {"id": True, "title": "Next", "items": "not-a-list"},
        ]})
        result = parse_model_output(text, MODE, "en", word_count=0)
        assert [(p.id, p.title, p.items) for p in result.phases] == [
            (2, "Setup", ["a", "b"]),
            (2, "Next", []),
        ]

    @pytest.mark.parametrize("raw_id,expected", [
        ("²", 1),
        ("½", 1),
        (" 4 ", 4),
        ("0", 1),
        (-3, 1),
    ])
    def test_unusable_phase_id_is_renumbered(self, raw_id, expected):
        text = json.dumps({"phases": [{"id": raw_id, "title": "t", "items": ["a"]}]})
        result = parse_model_output(text, MODE, "es", word_count=0)
        assert result.phases[0].id == expected

    def test_no_phases_fails(self):
        with pytest.raises(ParseFailure):
            parse_model_output(json.dumps(model_payload(phases=[])), MODE, "es", word_count=0)

    @pytest.mark.parametrize("raw,language,expected", [
        ("Easy", "es", "Fácil"),
        ("difícil", "en", "Hard"),
        ("  MEDIA ", "en", "Medium"),
        ("unknown", "es", "Media"),
        (None, "en", "Medium"),
    ])
    def test_normalize_difficulty(self, raw, language, expected):
        assert normalize_difficulty(raw, language) == expected


def _cascade(script):
    client = ScriptedLLMClient(script)
    orchestrator = AIOrchestrator(client, ai_retry_policy(2, 0.0))
    return RepairCascade(orchestrator), client


class TestRepairCascade:
    @pytest.mark.asyncio
    async def test_direct_parse_makes_no_calls(self):
        cascade, client = _cascade([VALID_OUTPUT])
        result = await cascade.parse(VALID_OUTPUT, MODE, "es", word_count=0)
        assert len(result.phases) == 2
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_first_repair_recovers(self):
        cascade, client = _cascade([VALID_OUTPUT])
        statuses = []
        call_logger = CallLogger()
        result = await cascade.parse(
            '{"objective": "Organizar", "phases": [', MODE, "es", word_count=0,
            call_logger=call_logger,
            on_status=lambda step, message: statuses.append(step),
        )
        assert result.objective == "Organizar la semana de trabajo"
        assert len(client.calls) == 1
        assert statuses == ["repair-json"]
        assert [r.step for r in call_logger.records] == ["repair-1"]

    @pytest.mark.asyncio
    async def test_compact_repair_after_full(self):
        cascade, client = _cascade(["still broken {", VALID_OUTPUT])
        result = await cascade.parse("broken", MODE, "en", word_count=0)
        assert len(result.phases) == 2
        assert len(client.calls) == 2
        compact_user = client.calls[1]["messages"][0].content
        assert "compact JSON" in compact_user

    @pytest.mark.asyncio
    async def test_superscript_id_parses_without_repair(self):
        cascade, client = _cascade([VALID_OUTPUT])
        text = '{"phases":[{"id":"²","title":"t","items":["a"]}]}'
        result = await cascade.parse(text, MODE, "es", word_count=0)
        assert result.phases[0].id == 1
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_exhausted_raises_invalid_output(self):
        cascade, client = _cascade(["nope"])
        with pytest.raises(InvalidModelOutputError) as exc_info:
            await cascade.parse("broken", MODE, "es", word_count=0)
        assert exc_info.value.kind == ErrorKind.INVALID_MODEL_OUTPUT
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_repair_call_failure_propagates(self):
        cascade, _ = _cascade([StatusError(401, "bad key")])
        with pytest.raises(AIProviderError) as exc_info:
            await cascade.parse("broken", MODE, "es", word_count=0)
        assert exc_info.value.kind == ErrorKind.AI_AUTH

    @pytest.mark.asyncio
    async def test_async_status_callback_awaited(self):
        cascade, _ = _cascade([VALID_OUTPUT])
        seen = []

        async def on_status(step, message):
            seen.append(step)

        await cascade.parse("broken", MODE, "es", word_count=0, on_status=on_status)
        assert seen == ["repair-json"]

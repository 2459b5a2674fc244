import asyncio

import pytest

from backend.app.services import ai_text
from backend.app.services.ai_client import AIClientError
from backend.app.services.ai_common import (
    extract_first_json_array,
    extract_first_json_object,
    find_balanced_span,
    parse_best_effort,
    split_list_fallback,
)
from backend.app.utils.error_handlers import AIServiceError, ValidationError


class ScriptedAI:
    enabled = True

    def __init__(self, reply):
        self.reply = reply

    async def complete(self, prompt: str) -> str:
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class TestJsonExtraction:
    def test_object_inside_prose(self):
        assert extract_first_json_object('Result: {"a": 1, "b": {"c": 2}} done') == {"a": 1, "b": {"c": 2}}

    def test_fenced_object(self):
        assert extract_first_json_object('```json\n{"ok": true}\n```') == {"ok": True}

    def test_braces_inside_strings_are_ignored(self):
        assert find_balanced_span('x {"a": "}"} y', "{", "}") == '{"a": "}"}'

    def test_skips_unbalanced_opener(self):
        assert extract_first_json_array('[ broken ["a", "b"]') == ["a", "b"]

    def test_wrong_shape_raises(self):
        with pytest.raises(ValueError):
            extract_first_json_object("[1, 2]")
        with pytest.raises(ValueError):
            extract_first_json_array("   ")


class TestParseBestEffort:
    def test_array_fallback_splits_commas_newlines_and_bullets(self):
        result = parse_best_effort("Python, React\n- Docker\n2. SQL\n", "array")
        assert result.fallback is True
        assert result.value == ["Python", "React", "Docker", "SQL"]

    def test_array_success(self):
        result = parse_best_effort('["Go"]', "array")
        assert (result.value, result.fallback) == (["Go"], False)

    def test_object_fallback_is_none(self):
        result = parse_best_effort("no json here", "object")
        assert (result.value, result.fallback) == (None, True)

    def test_text_is_trimmed(self):
        assert parse_best_effort("  hi  ", "text").value == "hi"
        assert parse_best_effort(None, "text").value == ""

    def test_split_strips_quotes_and_brackets(self):
        assert split_list_fallback('["a", "b"') == ["a", "b"]


class TestAIText:
    def test_extract_skills_caps_at_twenty(self):
        reply = "[" + ", ".join(f'"s{i}"' for i in range(30)) + "]"
        skills = asyncio.run(ai_text.extract_skills(ScriptedAI(reply), "text"))
        assert skills == [f"s{i}" for i in range(20)]

    def test_client_error_becomes_generic_ai_error(self):
        with pytest.raises(AIServiceError) as exc:
            asyncio.run(ai_text.extract_skills(ScriptedAI(AIClientError("401 bad key sk-123")), "text"))
        assert exc.value.message == "AI service error"
        assert "sk-123" not in exc.value.message

    def test_parse_resume_keeps_known_fields_and_list_defaults(self):
        reply = '{"name": "Ada", "skills": "Python", "secret": 1, "education": [{"degree": "BSc"}]}'
        data = asyncio.run(ai_text.parse_resume(ScriptedAI(reply), "resume text"))
        assert data == {"name": "Ada", "skills": [], "experience": [], "education": [{"degree": "BSc"}]}

    def test_parse_resume_without_json_is_a_validation_error(self):
        with pytest.raises(ValidationError) as exc:
            asyncio.run(ai_text.parse_resume(ScriptedAI("I could not parse this"), "resume"))
        assert exc.value.status_code == 400

    def test_career_tips_default_and_cap(self):
        assert asyncio.run(ai_text.career_tips(ScriptedAI("be great"), skills=[], bio="", location="")) == (
            ai_text.DEFAULT_CAREER_TIPS
        )
        tips = asyncio.run(ai_text.career_tips(ScriptedAI('["a", "b", "c", "d"]'), skills=[], bio="", location=""))
        assert tips == ["a", "b", "c"]

    def test_generate_bio_returns_trimmed_text(self):
        bio = asyncio.run(ai_text.generate_bio(ScriptedAI("  I am Ada.  "), {}, fallback_name="Ada"))
        assert bio == "I am Ada."

"""The OpenAI-backed generator and the generate-then-checkpoint orchestrator."""
import json
from types import SimpleNamespace

import openai
import pytest

from canvasforge.errors import GenerationUnavailable, NotFoundOrUnauthorized, ValidationError
from canvasforge.generation import (
    GenerationResult,
    OpenAIGameCodeGenerator,
    generate_and_maybe_checkpoint,
)
from canvasforge.generation.prompts import SYSTEM_PROMPT, build_messages
from canvasforge.store import checkpoints, games

from conftest import OWNER_A, OWNER_B, FakeGenerator, triple


# ── Helpers ──────────────────────────────────────────────────────────────────

class FakeCompletions:
    def __init__(self, content=None, error=None, choices=None):
        self.content = content
        self.error = error
        self.choices = choices
        self.requests = []

    async def create(self, **request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.choices is not None:
            return SimpleNamespace(choices=self.choices)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _payload(**overrides):
    body = {
        "html": "<canvas id='game'></canvas>",
        "css": "canvas { display: block; }",
        "javascript": "requestAnimationFrame(loop);",
        "description": "A paddle game",
    }
    body.update(overrides)
    return json.dumps(body)


# ── Prompt building ──────────────────────────────────────────────────────────

def test_build_messages_for_new_game():
    messages = build_messages("Pong with two paddles")
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1]["role"] == "user"
    assert "Pong with two paddles" in messages[1]["content"]
    assert "Previous HTML" not in messages[1]["content"]


def test_build_messages_includes_previous_version():
    previous = triple("old")
    user = build_messages("make the ball faster", previous)[1]["content"]
    assert "make the ball faster" in user
    assert previous.markup in user
    assert previous.styles in user
    assert previous.logic in user


# ── OpenAIGameCodeGenerator ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_generator_maps_json_to_artifacts():
    completions = FakeCompletions(content=_payload())
    generator = OpenAIGameCodeGenerator(model="test-model", client=_client(completions))

    result = await generator.generate("Pong")

    assert result.artifacts.markup == "<canvas id='game'></canvas>"
    assert result.artifacts.styles == "canvas { display: block; }"
    assert result.artifacts.logic == "requestAnimationFrame(loop);"
    assert result.description == "A paddle game"

    request = completions.requests[0]
    assert request["model"] == "test-model"
    assert request["response_format"] == {"type": "json_object"}
    assert "temperature" not in request


@pytest.mark.asyncio
async def test_generator_sends_previous_code_and_temperature():
    completions = FakeCompletions(content=_payload())
    generator = OpenAIGameCodeGenerator(
        model="test-model", client=_client(completions), temperature=0.2
    )

    await generator.generate("add a score", triple("v1"))

    request = completions.requests[0]
    assert request["temperature"] == 0.2
    assert triple("v1").logic in request["messages"][1]["content"]


def test_generator_requires_model():
    with pytest.raises(ValueError):
        OpenAIGameCodeGenerator(model=" ", client=_client(FakeCompletions()))


@pytest.mark.asyncio
@pytest.mark.parametrize("completions", [
    FakeCompletions(content="not json"),
    FakeCompletions(content=json.dumps({"html": "<canvas></canvas>"})),
    FakeCompletions(content=""),
    FakeCompletions(choices=[]),
    FakeCompletions(error=openai.OpenAIError("connection reset")),
])
async def test_generator_failures_become_generation_unavailable(completions):
    generator = OpenAIGameCodeGenerator(model="test-model", client=_client(completions))

    with pytest.raises(GenerationUnavailable):
        await generator.generate("Pong")


# ── generate_and_maybe_checkpoint ────────────────────────────────────────────

@pytest.mark.asyncio
async def test_generate_without_save_touches_nothing(db_session, fake_generator):
    game = await games.create_game(db_session, "Pong", OWNER_A)

    outcome = await generate_and_maybe_checkpoint(
        db_session, fake_generator, "Pong", game_id=game.id, owner_key=OWNER_A
    )

    assert outcome.artifacts == triple("generated")
    assert outcome.description == "Made a game"
    assert outcome.checkpoint_id is None
    assert fake_generator.calls == [("Pong", None)]
    assert await checkpoints.list_checkpoints(db_session, game.id, OWNER_A) == []


@pytest.mark.asyncio
async def test_generate_and_save_appends_checkpoint(db_session, fake_generator):
    game = await games.create_game(db_session, "Pong", OWNER_A)
    previous = triple("v0")

    outcome = await generate_and_maybe_checkpoint(
        db_session, fake_generator, "faster ball", previous=previous,
        game_id=game.id, owner_key=OWNER_A, save=True,
    )

    assert outcome.checkpoint_id is not None
    assert fake_generator.calls == [("faster ball", previous)]
    history = await checkpoints.list_checkpoints(db_session, game.id, OWNER_A)
    assert [c.id for c in history] == [outcome.checkpoint_id]
    assert history[0].prompt == "faster ball"
    assert history[0].description == "Made a game"
    assert history[0].artifacts == triple("generated")
    assert game.current_checkpoint_id == outcome.checkpoint_id


@pytest.mark.asyncio
async def test_failed_save_still_returns_generated_code(db_session, fake_generator):
    game = await games.create_game(db_session, "Pong", OWNER_A)
    game_id = game.id

    outcome = await generate_and_maybe_checkpoint(
        db_session, fake_generator, "Pong", game_id=game_id, owner_key=OWNER_B, save=True
    )

    assert outcome.artifacts == triple("generated")
    assert outcome.checkpoint_id is None
    assert await checkpoints.list_checkpoints(db_session, game_id, OWNER_A) == []


@pytest.mark.asyncio
async def test_failed_save_from_store_error(db_session, fake_generator, monkeypatch):
    game = await games.create_game(db_session, "Pong", OWNER_A)

    async def refuse(*args, **kwargs):
        raise NotFoundOrUnauthorized("Game")

    monkeypatch.setattr(checkpoints, "append_checkpoint", refuse)

    outcome = await generate_and_maybe_checkpoint(
        db_session, fake_generator, "Pong", game_id=game.id, owner_key=OWNER_A, save=True
    )
    assert outcome.checkpoint_id is None


@pytest.mark.asyncio
async def test_generator_failure_propagates_and_saves_nothing(db_session, failing_generator):
    game = await games.create_game(db_session, "Pong", OWNER_A)

    with pytest.raises(GenerationUnavailable):
        await generate_and_maybe_checkpoint(
            db_session, failing_generator, "Pong", game_id=game.id, owner_key=OWNER_A, save=True
        )
    assert await checkpoints.list_checkpoints(db_session, game.id, OWNER_A) == []


@pytest.mark.asyncio
async def test_unexpected_generator_error_is_wrapped(db_session):
    generator = FakeGenerator(error=KeyError("choices"))

    with pytest.raises(GenerationUnavailable) as excinfo:
        await generate_and_maybe_checkpoint(db_session, generator, "Pong")
    assert isinstance(excinfo.value.__cause__, KeyError)


@pytest.mark.asyncio
async def test_generate_requires_prompt(db_session, fake_generator):
    with pytest.raises(ValidationError):
        await generate_and_maybe_checkpoint(db_session, fake_generator, "  ")
    assert fake_generator.calls == []


@pytest.mark.asyncio
async def test_custom_generator_result_is_passed_through(db_session):
    result = GenerationResult(artifacts=triple("custom"), description="Custom")
    outcome = await generate_and_maybe_checkpoint(db_session, FakeGenerator(result=result), "Pong")
    assert outcome.artifacts == triple("custom")
    assert outcome.description == "Custom"

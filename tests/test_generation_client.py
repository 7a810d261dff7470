import httpx
import pytest

from studio.errors import GenerationError
from studio.services.generation_client import (
    EXTRACTION_STRATEGIES,
    GenerationClient,
    extract_image,
)

from tests.conftest import FakeGateway, chat_image_response

# Response shapes seen from the gateway over time
KNOWN_RESPONSES = {
    "message_image_url": chat_image_response("https://img.test/1.png"),
    "message_image": {"choices": [{"message": {"images": [{"url": "https://img.test/2.png"}]}}]},
    "data_array": {"created": 1, "data": [{"url": "https://img.test/3.png"}]},
    "output_array": {"output": [{"url": "https://img.test/4.png"}]},
    "images_array": {"images": [{"url": "https://img.test/5.png"}]},
    "flat_image_url": {"image_url": "https://img.test/6.png"},
}


@pytest.mark.parametrize("name", sorted(KNOWN_RESPONSES))
def test_every_known_shape_is_extracted(name):
    match = extract_image(KNOWN_RESPONSES[name])

    assert match is not None
    strategy, url = match
    assert strategy == name
    assert url.startswith("https://img.test/")


def test_every_strategy_has_a_fixture():
    assert {name for name, _ in EXTRACTION_STRATEGIES} == set(KNOWN_RESPONSES)


def test_first_strategy_wins():
    data = {**chat_image_response("https://img.test/nested.png"), "image_url": "https://img.test/flat.png"}
    assert extract_image(data) == ("message_image_url", "https://img.test/nested.png")


@pytest.mark.parametrize("data", [
    {},
    {"choices": []},
    {"choices": [{"message": {"content": "I cannot draw that"}}]},
    {"data": [{"url": ""}]},
    {"image_url": None},
    {"images": "not-a-list"},
])
def test_unparseable_shapes(data):
    assert extract_image(data) is None


async def test_generate_sends_chat_payload(client, gateway):
    result = await client.generate("draw a fox", ["https://ref.test/a.png"])

    assert result.image_url.startswith("data:image/png;base64,")
    assert result.strategy == "message_image_url"
    assert result.final_url == result.image_url

    request = gateway.requests[0]
    assert request.headers["Authorization"] == "Bearer test-key"
    payload = gateway.payload()
    assert payload["model"] == "test-image-model"
    assert payload["modalities"] == ["image", "text"]
    assert payload["messages"][0]["role"] == "user"
    assert payload["messages"][0]["content"][0] == {"type": "text", "text": "draw a fox"}
    assert gateway.image_parts() == ["https://ref.test/a.png"]


async def test_generate_with_system_prompt(client, gateway):
    await client.generate("mockup please", system_prompt="You are a mockup AI")

    messages = gateway.payload()["messages"]
    assert messages[0] == {"role": "system", "content": "You are a mockup AI"}
    assert messages[1]["role"] == "user"


async def test_non_success_status(client, gateway):
    gateway.responses.append(httpx.Response(429, text="Rate limit exceeded"))

    with pytest.raises(GenerationError) as exc_info:
        await client.generate("draw a fox")

    assert exc_info.value.status_code == 429
    assert "Rate limit exceeded" in exc_info.value.message
    assert gateway.calls == 1


async def test_no_image_in_response(client, gateway):
    gateway.responses.append({"choices": [{"message": {"content": "no image for you"}}]})

    with pytest.raises(GenerationError, match="No image returned"):
        await client.generate("draw a fox")


async def test_non_json_body(client, gateway):
    gateway.responses.append(httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(GenerationError, match="non-JSON"):
        await client.generate("draw a fox")


async def test_timeout_is_a_generation_error(client, gateway):
    gateway.responses.append(httpx.ReadTimeout("timed out"))

    with pytest.raises(GenerationError, match="did not answer"):
        await client.generate("draw a fox")

    # Not retried
    assert gateway.calls == 1


async def test_missing_api_key_fails_before_calling():
    gateway = FakeGateway()
    client = GenerationClient(api_key="", transport=httpx.MockTransport(gateway.handler))
    with pytest.raises(GenerationError, match="API key"):
        await client.generate("draw a fox")
    assert gateway.calls == 0

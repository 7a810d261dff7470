import base64
import io
import json
import os
import tempfile

# Settings are read once at import time, point them at throwaway resources first
_storage_dir = tempfile.mkdtemp(prefix="studio-test-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_storage_dir}/app.db")
os.environ.setdefault("STORAGE_PATH", os.path.join(_storage_dir, "storage"))
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")
os.environ.setdefault("GENERATION_API_KEY", "test-key")

import httpx
import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import studio.models  # noqa: F401  registers the tables
from studio.database import Base
from studio.services.generation_client import GenerationClient
from studio.services.ledger import GenerationLedger
from studio.services.pipeline import DesignPipeline
from studio.services.storage import LocalStorage

REMOTE_IMAGE_URL = "https://cdn.example.com/generated/design.png"
BLOCKED_IMAGE_URL = "https://blocked.example.com/generated/design.png"


def make_png(size=(40, 40), color=None) -> bytes:
    """PNG bytes; random noise by default so the file is not tiny."""
    if color is None:
        image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    else:
        image = Image.new("RGBA", size, color)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def data_uri(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode()}"


def chat_image_response(url: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "images": [{"image_url": {"url": url}}]}}]}


class FakeGateway:
    """Stands in for the generation service and records what it was sent."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.generated_png = make_png()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = chat_image_response(data_uri(self.generated_png))
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def payload(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)

    def image_parts(self, index: int = -1) -> list[str]:
        content = self.payload(index)["messages"][-1]["content"]
        return [part["image_url"]["url"] for part in content if part["type"] == "image_url"]


class FakeImageHost:
    """Remote host for generated images; one domain refuses to serve."""

    def __init__(self):
        self.png = make_png()
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "blocked.example.com":
            return httpx.Response(403, text="CORS")
        return httpx.Response(200, content=self.png, headers={"Content-Type": "image/png"})


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def image_host():
    return FakeImageHost()


@pytest.fixture
def client(gateway):
    return GenerationClient(
        api_key="test-key",
        api_url="https://gateway.example.com/v1/chat/completions",
        model="test-image-model",
        timeout=5,
        transport=httpx.MockTransport(gateway.handler),
    )


@pytest.fixture
async def store(tmp_path, image_host):
    local = LocalStorage(
        base_path=tmp_path / "storage",
        public_base_url="http://testserver",
        buckets=("ai-designs", "ai-inputs"),
        transport=httpx.MockTransport(image_host.handler),
    )
    await local.ensure_storage_exists()
    return local


@pytest.fixture
async def db(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def pipeline(client, store):
    return DesignPipeline(client=client, store=store, ledger=GenerationLedger())

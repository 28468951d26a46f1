"""
Shared pytest fixtures for all tests.
"""

import asyncio
from typing import Any, Callable, List, Optional, Sequence

import pytest
import structlog
from pydantic import BaseModel, ConfigDict

from contextive.application.interfaces.i_tool_pack import IToolPack, ToolPackContext
from contextive.application.services.capability_registry import CapabilityRegistry
from contextive.application.services.tool_dispatcher import ToolDispatcher
from contextive.domain.entities.invocation import InvocationContext
from contextive.domain.entities.server_session import ServerSession
from contextive.domain.entities.tool_descriptor import (
    AccessMode,
    ToolAnnotations,
    ToolDescriptor,
)
from contextive.infrastructure.config.schema import ContextiveConfig


# ============================================================================
# Tool Models
# ============================================================================


class EchoInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str


class EchoOutput(BaseModel):
    echo: str


class PathInput(BaseModel):
    path: str


class WriteInput(BaseModel):
    path: str
    content: str


class WriteOutput(BaseModel):
    written: int


# ============================================================================
# Tool Bodies
# ============================================================================


async def echo_handler(arguments: EchoInput, context: InvocationContext) -> EchoOutput:
    return EchoOutput(echo=arguments.text)


def sync_echo_handler(arguments: EchoInput, context: InvocationContext) -> dict:
    return {"echo": arguments.text.upper()}


def make_descriptor(
    name: str,
    handler: Callable[..., Any] = echo_handler,
    pack: str = "workbench",
    input_model: type = EchoInput,
    output_model: type = EchoOutput,
    access: AccessMode = AccessMode.READ_ONLY,
    annotations: Optional[ToolAnnotations] = None,
) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        pack=pack,
        description=f"Test tool {name}",
        input_model=input_model,
        output_model=output_model,
        handler=handler,
        access=access,
        annotations=annotations or ToolAnnotations(),
    )


# ============================================================================
# Tool Pack Fixtures
# ============================================================================


class StaticToolPack(IToolPack):
    """Tool pack that contributes a fixed list of descriptors."""

    def __init__(self, name: str, descriptors: Sequence[ToolDescriptor] = ()):
        self.name = name
        self._descriptors = list(descriptors)
        self.contexts: List[ToolPackContext] = []

    def contribute(self, context: ToolPackContext) -> List[ToolDescriptor]:
        self.contexts.append(context)
        return list(self._descriptors)


class FakeFilesystemPack(IToolPack):
    """An fs-like pack with one reading and one destructive writing tool."""

    name = "fs"

    def __init__(self):
        self.writes: List[str] = []

    def contribute(self, context: ToolPackContext) -> List[ToolDescriptor]:
        async def read_file(arguments: PathInput, invocation: InvocationContext) -> dict:
            return {"echo": f"contents of {arguments.path}"}

        async def write_file(arguments: WriteInput, invocation: InvocationContext) -> dict:
            self.writes.append(arguments.path)
            return {"written": len(arguments.content)}

        return [
            make_descriptor("read_file", read_file, pack="fs", input_model=PathInput),
            make_descriptor(
                "write_file",
                write_file,
                pack="fs",
                input_model=WriteInput,
                output_model=WriteOutput,
                access=AccessMode.READ_WRITE,
                annotations=ToolAnnotations(read_only=False, destructive=True),
            ),
        ]


@pytest.fixture
def fs_pack() -> FakeFilesystemPack:
    return FakeFilesystemPack()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def make_config() -> Callable[..., ContextiveConfig]:
    """Factory building a validated configuration from camelCase sections."""

    def _make(**sections: Any) -> ContextiveConfig:
        return ContextiveConfig.model_validate(sections)

    return _make


@pytest.fixture
def default_config() -> ContextiveConfig:
    return ContextiveConfig()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run from an empty directory with no CONTEXTIVE_* variables set."""
    monkeypatch.delenv("CONTEXTIVE_CONFIG", raising=False)
    monkeypatch.delenv("CONTEXTIVE_ENV", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ============================================================================
# Session, Registry and Dispatcher Fixtures
# ============================================================================


@pytest.fixture
def session() -> ServerSession:
    return ServerSession(transport_mode="stdio")


@pytest.fixture
def make_dispatcher(session: ServerSession) -> Callable[..., ToolDispatcher]:
    """Factory wiring descriptors of one pack into a dispatcher."""

    def _make(
        descriptors: Sequence[ToolDescriptor],
        mode: AccessMode = AccessMode.READ_ONLY,
        timeout_seconds: float = 1.0,
        pack: str = "workbench",
    ) -> ToolDispatcher:
        registry = CapabilityRegistry(descriptors, {pack: mode})
        return ToolDispatcher(registry, session, timeout_seconds=timeout_seconds)

    return _make


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Poll until predicate() holds, failing the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Drop any logging configuration a test installed."""
    yield
    structlog.reset_defaults()


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "e2e: mark test as an end-to-end test"
    )

"""Global pytest configuration for the Engram memory engine.

The module ensures the ``src`` tree is importable regardless of how the
repository is cloned and provides the scripted model and tokenizer stubs the
memory tests inject in place of real LLM and tokenizer backends.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

# Add the src directory to the Python path so imports can work correctly
project_root = Path(__file__).parent.parent
src_dir = project_root / 'src'

if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from engram.config.settings import MemoryConfig  # noqa: E402
from engram.memory.capabilities import Model, Tokenizer  # noqa: E402


class WordTokenizer(Tokenizer):
    """Counts whitespace-separated words."""

    def count(self, text: str) -> int:
        return len(text.split())


class ScriptedModel(Model):
    """Model stub replaying queued responses.

    Structured responses are queued per schema class name; each queued item is
    returned as-is, called with ``(system_prompt, context)`` when callable, or
    raised when it is an exception.
    """

    def __init__(self) -> None:
        self.structured: Dict[str, List[Any]] = {}
        self.texts: List[Any] = []
        self.calls: List[Tuple[str, str, str]] = []

    def queue(self, schema_name: str, *responses: Any) -> "ScriptedModel":
        self.structured.setdefault(schema_name, []).extend(responses)
        return self

    def queue_text(self, *responses: Any) -> "ScriptedModel":
        self.texts.extend(responses)
        return self

    @staticmethod
    def _resolve(response: Any, system_prompt: str, context: str) -> Any:
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(system_prompt, context)
        return response

    async def complete_text(self, system_prompt: str, context: str) -> str:
        self.calls.append(("text", system_prompt, context))
        if not self.texts:
            raise AssertionError("No scripted text response left")
        return self._resolve(self.texts.pop(0), system_prompt, context)

    async def complete_structured(self, system_prompt: str, context: str, schema):
        self.calls.append((schema.__name__, system_prompt, context))
        queue = self.structured.get(schema.__name__)
        if not queue:
            raise AssertionError(f"No scripted response left for {schema.__name__}")
        return self._resolve(queue.pop(0), system_prompt, context)

    def calls_for(self, schema_name: str) -> List[Tuple[str, str, str]]:
        return [call for call in self.calls if call[0] == schema_name]


@pytest.fixture
def tokenizer() -> WordTokenizer:
    return WordTokenizer()


@pytest.fixture
def model() -> ScriptedModel:
    return ScriptedModel()


@pytest.fixture
def memory_config(tmp_path: Path) -> MemoryConfig:
    return MemoryConfig(root_dir=tmp_path / "memory")

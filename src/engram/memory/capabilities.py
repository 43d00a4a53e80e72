"""
Injected Capabilities

The memory engine depends on two external capabilities:

    Model: Text and structured completion against any LLM backend.
    Tokenizer: Token counting used for threshold decisions.

Concrete LLM clients live outside this package; they subclass ``Model``.
``TiktokenTokenizer`` is the default tokenizer. The ``invoke_*`` helpers wrap
every model call so failures surface uniformly as ``ModelFailureError``.

Example:
    class MyModel(Model):
        async def complete_text(self, system_prompt, context):
            ...

        async def complete_structured(self, system_prompt, context, schema):
            ...
"""

import abc
import logging
from typing import Any, Dict, Type, TypeVar

import tiktoken
from pydantic import BaseModel, ValidationError

from engram.core.exceptions import ModelFailureError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class Model(abc.ABC):
    """Abstract LLM capability."""

    @abc.abstractmethod
    async def complete_text(self, system_prompt: str, context: str) -> str:
        """
        Generate free text.

        Args:
            system_prompt: Instructions for the model
            context: The material the instructions apply to

        Returns:
            The generated text
        """
        pass

    @abc.abstractmethod
    async def complete_structured(self, system_prompt: str, context: str, schema: Type[SchemaT]) -> SchemaT:
        """
        Generate a response conforming to ``schema``.

        Implementations may return a ``schema`` instance or a plain mapping
        that validates against it.
        """
        pass


class Tokenizer(abc.ABC):
    """Abstract token counting capability."""

    @abc.abstractmethod
    def count(self, text: str) -> int:
        pass


class TiktokenTokenizer(Tokenizer):
    """Token counter backed by a tiktoken encoding."""

    _encodings: Dict[str, Any] = {}

    def __init__(self, encoding_name: str = "cl100k_base"):
        self.encoding_name = encoding_name

    @property
    def encoding(self):
        if self.encoding_name not in self._encodings:
            try:
                self._encodings[self.encoding_name] = tiktoken.get_encoding(self.encoding_name)
            except (KeyError, ValueError):
                logger.warning(f"Unknown encoding {self.encoding_name}, falling back to cl100k_base encoding")
                self._encodings[self.encoding_name] = tiktoken.get_encoding("cl100k_base")
        return self._encodings[self.encoding_name]

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self.encoding.encode(text, disallowed_special=()))


async def invoke_text(model: Model, operation: str, system_prompt: str, context: str) -> str:
    """Call ``model.complete_text`` and normalise failures.

    Raises:
        ModelFailureError: If the call raises or returns something other than text.
    """
    try:
        result = await model.complete_text(system_prompt, context)
    except ModelFailureError:
        raise
    except Exception as e:
        logger.error(f"Model text completion failed during {operation}: {e}")
        raise ModelFailureError(operation, cause=e) from e

    if not isinstance(result, str):
        raise ModelFailureError(operation, f"Model returned {type(result).__name__} instead of text for '{operation}'")
    return result


async def invoke_structured(
    model: Model,
    operation: str,
    system_prompt: str,
    context: str,
    schema: Type[SchemaT],
) -> SchemaT:
    """Call ``model.complete_structured`` and validate the result against ``schema``.

    Raises:
        ModelFailureError: If the call raises or the response does not validate.
    """
    try:
        result = await model.complete_structured(system_prompt, context, schema)
    except ModelFailureError:
        raise
    except Exception as e:
        logger.error(f"Model structured completion failed during {operation}: {e}")
        raise ModelFailureError(operation, cause=e) from e

    if isinstance(result, schema):
        return result
    try:
        if isinstance(result, BaseModel):
            return schema.model_validate(result.model_dump())
        return schema.model_validate(result)
    except ValidationError as e:
        raise ModelFailureError(operation, f"Model response for '{operation}' did not match {schema.__name__}", cause=e) from e


__all__ = [
    "Model",
    "TiktokenTokenizer",
    "Tokenizer",
    "invoke_structured",
    "invoke_text",
]

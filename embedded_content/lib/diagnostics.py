import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict

import orjson

logger = logging.getLogger("embedded_content.diagnostics")


class DiagnosticKind(Enum):
    FALLBACK_REGISTERED_AS_FACTORY = "fallback_registered_as_factory"
    EMBED_VALIDATION_FAILED = "embed_validation_failed"


@dataclass(frozen=True)
class EmbedDiagnostic:
    """A non-fatal anomaly noticed by an EmbedService."""

    kind: DiagnosticKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


DiagnosticSink = Callable[[EmbedDiagnostic], None]


def log_diagnostic(diagnostic: EmbedDiagnostic) -> None:
    try:
        context = orjson.dumps(
            diagnostic.context,
            option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS | orjson.OPT_SORT_KEYS,
            default=str,
        ).decode()
    except orjson.JSONEncodeError:
        # The context holds untrusted data, e.g. tuple keys or huge integers.
        context = repr(diagnostic.context)
    logger.warning("%s\n%s", diagnostic.message, context)

"""
Capability registry.

The fixed set of operations the model may invoke. Each Capability has
exactly one handler in tools.py; descriptors (and the tool schemas sent
with every request) are derived from the handlers' signatures and
docstrings, so a capability cannot exist without its handler.
"""

import inspect
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Any, Tuple, List

from . import tools
from ..exceptions import UnknownCapabilityError


class Capability(str, Enum):
    """Names of the operations the model may request."""
    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    LIST_DIRECTORY = "list_directory"
    RUN_SHELL_COMMAND = "run_shell_command"


HANDLERS: Dict[Capability, Callable[..., str]] = {
    Capability.READ_FILE: tools.read_file,
    Capability.WRITE_FILE: tools.write_file,
    Capability.LIST_DIRECTORY: tools.list_directory,
    Capability.RUN_SHELL_COMMAND: tools.run_shell_command,
}


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    type: str
    description: str
    required: bool = True


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Static metadata for one capability."""
    name: str
    description: str
    parameters: Tuple[ParameterSpec, ...] = ()

    @property
    def required(self) -> List[str]:
        return [p.name for p in self.parameters if p.required]

    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]

    def to_schema(self) -> dict:
        """OpenAI/Ollama-compatible function tool schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        p.name: {"type": p.type, "description": p.description}
                        for p in self.parameters
                    },
                    "required": self.required,
                },
            },
        }


_JSON_TYPES = {int: "integer", bool: "boolean", float: "number", str: "string"}


def _parse_docstring(func: Callable) -> Dict[str, Any]:
    """Parse a Google-style docstring into structured parts.

    Returns:
        Dict with 'description', 'params' (name->description), 'returns'
    """
    doc = inspect.getdoc(func) or ""
    if not doc:
        return {"description": f"Function {func.__name__}", "params": {}, "returns": ""}

    description_lines = []
    params = {}
    returns = ""
    section = "description"

    for line in doc.split("\n"):
        stripped = line.strip()

        # Detect section headers
        if stripped.lower() in ("args:", "arguments:", "parameters:", "params:"):
            section = "args"
            continue
        elif stripped.lower() in ("returns:", "return:"):
            section = "returns"
            continue
        elif stripped.lower() in ("raises:", "examples:", "note:", "notes:"):
            section = "other"
            continue

        if section == "description":
            # First paragraph only
            if not stripped and description_lines:
                section = "other"
                continue
            description_lines.append(stripped)
        elif section == "args":
            # "param_name: description" or "param_name (type): description"
            match = re.match(r'^(\w+)\s*(?:\([^)]*\))?\s*:\s*(.+)', stripped)
            if match:
                params[match.group(1)] = match.group(2).strip()
        elif section == "returns":
            if stripped:
                returns = stripped

    description = " ".join(l for l in description_lines if l).strip()
    return {"description": description, "params": params, "returns": returns}


def describe(name: str, func: Callable) -> CapabilityDescriptor:
    """Build a descriptor from a handler's signature and docstring.

    Keyword-only parameters are host options and are left out.
    """
    parsed = _parse_docstring(func)
    parameters = []
    for pname, param in inspect.signature(func).parameters.items():
        if param.kind not in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.POSITIONAL_ONLY):
            continue
        ptype = _JSON_TYPES.get(param.annotation, "string")
        parameters.append(ParameterSpec(
            name=pname,
            type=ptype,
            description=parsed["params"].get(pname, f"The {pname} parameter"),
            required=param.default is inspect.Parameter.empty,
        ))
    return CapabilityDescriptor(
        name=name,
        description=parsed["description"] or f"Function {func.__name__}",
        parameters=tuple(parameters),
    )


def _check_lockstep():
    missing = [c.value for c in Capability if c not in HANDLERS]
    extra = [str(k) for k in HANDLERS if not isinstance(k, Capability)]
    if missing or extra:
        raise RuntimeError(f"Capability handlers out of sync: missing={missing} extra={extra}")


_check_lockstep()

CAPABILITIES: Tuple[CapabilityDescriptor, ...] = tuple(
    describe(cap.value, HANDLERS[cap]) for cap in Capability
)

_BY_NAME: Dict[str, CapabilityDescriptor] = {d.name: d for d in CAPABILITIES}


def lookup(name: str) -> Capability:
    """Resolve a tool name to its Capability.

    Raises:
        UnknownCapabilityError: if the name is not registered
    """
    try:
        return Capability(name)
    except ValueError:
        raise UnknownCapabilityError(name) from None


def get_descriptor(name: str) -> CapabilityDescriptor:
    return _BY_NAME[lookup(name).value]


def tool_schemas() -> List[dict]:
    """Schemas for every capability, in registry order."""
    return [d.to_schema() for d in CAPABILITIES]

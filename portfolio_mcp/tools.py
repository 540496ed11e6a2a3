"""
Tool definitions, argument models and the tool registry.

Each tool is a thin adapter that maps validated RPC arguments onto one
backend call. The registry pairs every tool with its descriptor (what
tools/list advertises) and carries the visibility set: the subset of
tools reachable through tools/call.

    registry = build_registry(public=["list_projects", "list_skills"])
    registry.is_public("delete_project")   # False
    registry.get("delete_project")         # ToolSpec, registered but private

Tool names form a closed set (ToolName). Adding a tool means adding an enum
member, a handler and a descriptor in this module; the consistency check at
the bottom fails at import time if any of the three is missing.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Mapping

from mcp.types import Tool
from pydantic import BaseModel, ConfigDict, ValidationError

from portfolio_mcp.backend import BackendClient, BackendResult


class ToolName(str, Enum):
    LIST_PROJECTS = "list_projects"
    LIST_SKILLS = "list_skills"
    GET_PROJECT = "get_project"
    CREATE_PROJECT = "create_project"
    UPDATE_PROJECT = "update_project"
    DELETE_PROJECT = "delete_project"


# Read-only tools are the only ones exposed by default.
DEFAULT_PUBLIC_TOOLS = (ToolName.LIST_PROJECTS.value, ToolName.LIST_SKILLS.value)


class ToolArgumentError(Exception):
    """
    Raised when tools/call arguments don't match the tool's argument model.

    Attributes:
        tool: Name of the tool being called
        details: Flattened "field: reason" strings from pydantic
    """

    def __init__(self, tool: str, details: list[str]):
        self.tool = tool
        self.details = details
        super().__init__(f"Invalid arguments for {tool}: {'; '.join(details)}")

    @classmethod
    def from_validation_error(cls, tool: str, error: ValidationError) -> "ToolArgumentError":
        details = []
        for err in error.errors():
            location = ".".join(str(part) for part in err["loc"]) or "arguments"
            details.append(f"{location}: {err['msg']}")
        return cls(tool, details)


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class NoArgs(BaseModel):
    pass


class ProjectIdArgs(BaseModel):
    project_id: int


class CreateProjectArgs(BaseModel):
    title: str
    description: str
    link: str
    use_case: str | None = None
    frontend: str | None = None
    backend: str | None = None
    hosting: str | None = None
    skill_ids: list[int] | None = None


class UpdateProjectArgs(BaseModel):
    """Identifier plus any subset of project fields; unknown fields pass through."""

    model_config = ConfigDict(extra="allow")

    project_id: int
    title: str | None = None
    description: str | None = None
    link: str | None = None
    use_case: str | None = None
    frontend: str | None = None
    backend: str | None = None
    hosting: str | None = None
    skill_ids: list[int] | None = None


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
# Every handler receives its validated argument model and the backend client,
# and returns the BackendResult untouched.


async def list_projects(args: NoArgs, backend: BackendClient) -> BackendResult:
    return await backend.call("GET", "projects/")


async def list_skills(args: NoArgs, backend: BackendClient) -> BackendResult:
    return await backend.call("GET", "skills/")


async def get_project(args: ProjectIdArgs, backend: BackendClient) -> BackendResult:
    return await backend.call("GET", f"projects/{args.project_id}/")


async def create_project(args: CreateProjectArgs, backend: BackendClient) -> BackendResult:
    payload = args.model_dump(exclude_none=True)
    return await backend.call("POST", "projects/", payload)


async def update_project(args: UpdateProjectArgs, backend: BackendClient) -> BackendResult:
    # Partial update: only fields the caller actually supplied with a value.
    payload = args.model_dump(exclude={"project_id"}, exclude_none=True)
    return await backend.call("PUT", f"projects/{args.project_id}/", payload)


async def delete_project(args: ProjectIdArgs, backend: BackendClient) -> BackendResult:
    return await backend.call("DELETE", f"projects/{args.project_id}/")


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}

_PROJECT_ID_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"project_id": {"type": "integer", "description": "Project ID"}},
    "required": ["project_id"],
}

_PROJECT_FIELDS: dict[str, Any] = {
    "title": {"type": "string", "description": "Project title"},
    "description": {"type": "string", "description": "Project description"},
    "link": {"type": "string", "description": "Project URL"},
    "use_case": {"type": "string", "description": "What the project is used for"},
    "frontend": {"type": "string", "description": "Frontend technologies"},
    "backend": {"type": "string", "description": "Backend technologies"},
    "hosting": {"type": "string", "description": "Hosting platform"},
    "skill_ids": {
        "type": "array",
        "items": {"type": "integer"},
        "description": "IDs of skills used in the project",
    },
}


@dataclass(frozen=True)
class ToolSpec:
    descriptor: Tool
    args_model: type[BaseModel]
    handler: Callable[[Any, BackendClient], Awaitable[BackendResult]]

    @property
    def name(self) -> str:
        return self.descriptor.name

    def parse_arguments(self, arguments: Mapping[str, Any]) -> BaseModel:
        try:
            return self.args_model.model_validate(arguments)
        except ValidationError as e:
            raise ToolArgumentError.from_validation_error(self.name, e) from e

    async def invoke(self, arguments: Mapping[str, Any], backend: BackendClient) -> BackendResult:
        return await self.handler(self.parse_arguments(arguments), backend)


TOOL_SPECS: dict[ToolName, ToolSpec] = {
    ToolName.LIST_PROJECTS: ToolSpec(
        Tool(
            name=ToolName.LIST_PROJECTS.value,
            description="List all projects in the portfolio",
            inputSchema=_EMPTY_SCHEMA,
        ),
        NoArgs,
        list_projects,
    ),
    ToolName.LIST_SKILLS: ToolSpec(
        Tool(
            name=ToolName.LIST_SKILLS.value,
            description="List all skills in the portfolio",
            inputSchema=_EMPTY_SCHEMA,
        ),
        NoArgs,
        list_skills,
    ),
    ToolName.GET_PROJECT: ToolSpec(
        Tool(
            name=ToolName.GET_PROJECT.value,
            description="Get a single project by ID",
            inputSchema=_PROJECT_ID_SCHEMA,
        ),
        ProjectIdArgs,
        get_project,
    ),
    ToolName.CREATE_PROJECT: ToolSpec(
        Tool(
            name=ToolName.CREATE_PROJECT.value,
            description="Create a new project in the portfolio",
            inputSchema={
                "type": "object",
                "properties": _PROJECT_FIELDS,
                "required": ["title", "description", "link"],
            },
        ),
        CreateProjectArgs,
        create_project,
    ),
    ToolName.UPDATE_PROJECT: ToolSpec(
        Tool(
            name=ToolName.UPDATE_PROJECT.value,
            description="Update fields of an existing project",
            inputSchema={
                "type": "object",
                "properties": {
                    **_PROJECT_ID_SCHEMA["properties"],
                    **_PROJECT_FIELDS,
                },
                "required": ["project_id"],
            },
        ),
        UpdateProjectArgs,
        update_project,
    ),
    ToolName.DELETE_PROJECT: ToolSpec(
        Tool(
            name=ToolName.DELETE_PROJECT.value,
            description="Delete a project by ID",
            inputSchema=_PROJECT_ID_SCHEMA,
        ),
        ProjectIdArgs,
        delete_project,
    ),
}

# Every ToolName has a spec, and every spec is registered under its own name.
if set(TOOL_SPECS) != set(ToolName) or any(
    spec.name != name.value for name, spec in TOOL_SPECS.items()
):
    raise RuntimeError("TOOL_SPECS is out of sync with ToolName")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolRegistry:
    """
    Immutable tool registry plus visibility set.

    Built once at process start and handed to the dispatcher. Construction
    fails if the visibility set names a tool that isn't registered.
    """

    tools: Mapping[str, ToolSpec]
    public: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tools", MappingProxyType(dict(self.tools)))
        object.__setattr__(self, "public", frozenset(self.public))
        unknown = sorted(self.public - set(self.tools))
        if unknown:
            raise ValueError(f"Public tools are not registered: {', '.join(unknown)}")

    def is_public(self, name: Any) -> bool:
        return isinstance(name, str) and name in self.public

    def get(self, name: str) -> ToolSpec | None:
        return self.tools.get(name)

    def public_descriptors(self) -> list[dict[str, Any]]:
        """Descriptors for tools/list, in registration order."""
        return [
            spec.descriptor.model_dump(by_alias=True, exclude_none=True)
            for name, spec in self.tools.items()
            if name in self.public
        ]


def build_registry(public: Iterable[str] = DEFAULT_PUBLIC_TOOLS) -> ToolRegistry:
    return ToolRegistry(
        tools={name.value: spec for name, spec in TOOL_SPECS.items()},
        public=frozenset(public),
    )

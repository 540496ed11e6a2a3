"""
Tests for the tool registry and tool handlers (portfolio_mcp/tools.py).

Handlers are exercised directly through ToolSpec.invoke() against the fake
backend, independent of the visibility policy. That policy is covered in
test_dispatcher.py.
"""

import httpx
import pytest

from portfolio_mcp.tools import (
    DEFAULT_PUBLIC_TOOLS,
    TOOL_SPECS,
    ToolArgumentError,
    ToolName,
    ToolRegistry,
    build_registry,
)


def spec(name: ToolName):
    return TOOL_SPECS[name]


class TestRegistry:
    def test_every_tool_name_is_registered(self):
        registry = build_registry()

        assert set(registry.tools) == {name.value for name in ToolName}

    def test_default_visibility_is_read_only_list_tools(self):
        registry = build_registry()

        assert registry.public == frozenset({"list_projects", "list_skills"})
        assert set(DEFAULT_PUBLIC_TOOLS) == registry.public

    def test_private_tools_are_registered_but_not_public(self):
        registry = build_registry()

        for name in ("get_project", "create_project", "update_project", "delete_project"):
            assert registry.get(name) is not None
            assert not registry.is_public(name)

    def test_non_string_names_are_never_public(self):
        registry = build_registry()

        assert not registry.is_public(["list_projects"])
        assert not registry.is_public(None)

    def test_visibility_set_must_be_subset_of_registry(self):
        with pytest.raises(ValueError, match="not registered: drop_database"):
            build_registry(public=["list_projects", "drop_database"])

    def test_registry_is_immutable(self):
        registry = build_registry()

        with pytest.raises(TypeError):
            registry.tools["evil"] = registry.tools["list_projects"]

    def test_public_descriptors_match_visibility_set(self):
        registry = build_registry()

        descriptors = registry.public_descriptors()

        assert [d["name"] for d in descriptors] == ["list_projects", "list_skills"]
        assert descriptors[0] == {
            "name": "list_projects",
            "description": "List all projects in the portfolio",
            "inputSchema": {"type": "object", "properties": {}},
        }

    def test_empty_visibility_set_advertises_nothing(self):
        registry = ToolRegistry(tools=build_registry().tools, public=frozenset())

        assert registry.public_descriptors() == []


class TestReadHandlers:
    async def test_list_projects(self, make_backend, fake_backend):
        fake_backend.routes["GET projects/"] = httpx.Response(200, json=[{"id": 1}])

        result = await spec(ToolName.LIST_PROJECTS).invoke({}, make_backend())

        assert result.payload() == [{"id": 1}]

    async def test_list_skills_ignores_extra_arguments(self, make_backend, fake_backend):
        fake_backend.routes["GET skills/"] = httpx.Response(200, json=[])

        result = await spec(ToolName.LIST_SKILLS).invoke({"unused": 1}, make_backend())

        assert result.ok
        assert fake_backend.last.url.path.endswith("/skills/")

    async def test_get_project_uses_id_as_path_segment(self, make_backend, fake_backend):
        fake_backend.routes["GET projects/5/"] = httpx.Response(200, json={"id": 5})

        result = await spec(ToolName.GET_PROJECT).invoke({"project_id": 5}, make_backend())

        assert result.payload() == {"id": 5}

    async def test_get_project_requires_id(self, make_backend):
        with pytest.raises(ToolArgumentError, match="project_id"):
            await spec(ToolName.GET_PROJECT).invoke({}, make_backend())

    async def test_get_project_rejects_non_integer_id(self, make_backend, fake_backend):
        with pytest.raises(ToolArgumentError, match="Invalid arguments for get_project"):
            await spec(ToolName.GET_PROJECT).invoke({"project_id": "../skills"}, make_backend())

        assert fake_backend.requests == []


class TestWriteHandlers:
    async def test_create_project_omits_unset_optional_fields(self, make_backend, fake_backend):
        fake_backend.routes["POST projects/"] = httpx.Response(201, json={"id": 10})

        await spec(ToolName.CREATE_PROJECT).invoke(
            {
                "title": "Site",
                "description": "Personal site",
                "link": "https://example.com",
                "hosting": "Cloudflare",
                "frontend": None,
            },
            make_backend(),
        )

        assert fake_backend.last_json() == {
            "title": "Site",
            "description": "Personal site",
            "link": "https://example.com",
            "hosting": "Cloudflare",
        }

    async def test_create_project_forwards_skill_ids(self, make_backend, fake_backend):
        fake_backend.routes["POST projects/"] = httpx.Response(201, json={"id": 10})

        await spec(ToolName.CREATE_PROJECT).invoke(
            {"title": "T", "description": "D", "link": "L", "skill_ids": [1, 2]},
            make_backend(),
        )

        assert fake_backend.last_json()["skill_ids"] == [1, 2]

    async def test_create_project_requires_title_description_link(self, make_backend):
        with pytest.raises(ToolArgumentError) as exc_info:
            await spec(ToolName.CREATE_PROJECT).invoke({"title": "T"}, make_backend())

        fields = " ".join(exc_info.value.details)
        assert "description" in fields
        assert "link" in fields

    async def test_update_project_drops_null_fields(self, make_backend, fake_backend):
        fake_backend.routes["PUT projects/5/"] = httpx.Response(200, json={"id": 5})

        await spec(ToolName.UPDATE_PROJECT).invoke(
            {"project_id": 5, "title": "X", "description": None},
            make_backend(),
        )

        assert fake_backend.last.method == "PUT"
        assert fake_backend.last_json() == {"title": "X"}

    async def test_update_project_forwards_unknown_fields(self, make_backend, fake_backend):
        fake_backend.routes["PUT projects/5/"] = httpx.Response(200, json={"id": 5})

        await spec(ToolName.UPDATE_PROJECT).invoke(
            {"project_id": 5, "featured": True, "priority": None},
            make_backend(),
        )

        assert fake_backend.last_json() == {"featured": True}

    async def test_delete_project_sends_no_body(self, make_backend, fake_backend):
        fake_backend.routes["DELETE projects/9/"] = httpx.Response(200, json={"deleted": 9})

        result = await spec(ToolName.DELETE_PROJECT).invoke({"project_id": 9}, make_backend())

        assert result.payload() == {"deleted": 9}
        assert fake_backend.last.method == "DELETE"
        assert fake_backend.last.content == b""

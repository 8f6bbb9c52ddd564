"""
Tests for the import/export format converters.

Exported documents are parsed back and compared on the parts each format can
carry: names, methods, URLs, headers, cookies, bodies and authorization.
"""

import json

import pytest

from api_workspace.exceptions import InvalidImportError
from api_workspace.schemas.project import Folder, RequestFile
from api_workspace.schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    BasicAuth,
    BearerAuth,
    Cookie,
    FormUrlEncodedBody,
    MultipartBody,
    MultipartField,
    RawBody,
)
from api_workspace.services.converters import (
    GENERATORS,
    PARSERS,
    generate_curl,
    generate_insomnia,
    generate_native,
    generate_openapi,
    generate_postman,
    parse_curl,
    parse_insomnia,
    parse_native,
    parse_openapi,
    parse_postman,
)
from api_workspace.services.project_factory import new_project
from api_workspace.services.tree_mutations import add_folder, add_request
from api_workspace.services.tree_navigator import collect_ids, iter_items


@pytest.fixture
def project():
    project = new_project("Shop API")
    project.description = "Orders and users"
    project.authorization = BasicAuth(username="admin", password="secret")
    root = project.root

    users = add_folder(project.root, root.id, "Users")
    add_request(root, users, "List users", ApiRequest(
        method="GET",
        url="https://api.example.com/users",
        headers={"Accept": "application/json"},
        query_params={"page": "1"},
        cookies=[Cookie(name="sid", value="abc")],
        auth=BearerAuth(token="t0k"),
    ))
    add_request(root, users, "Create user", ApiRequest(
        method="POST",
        url="https://api.example.com/users",
        body=RawBody(content='{"name": "Ada"}', content_type="application/json"),
        auth=ApiKeyAuth(key="api_key", value="k", add_to="query"),
    ))
    add_request(root, root.id, "Login", ApiRequest(
        method="PUT",
        url="https://api.example.com/login",
        body=FormUrlEncodedBody(fields={"user": "ada", "pass": "pw"}),
    ))
    add_request(root, root.id, "Upload", ApiRequest(
        method="POST",
        url="https://api.example.com/upload",
        body=MultipartBody(fields=[
            MultipartField(name="title", value="avatar"),
            MultipartField(name="file", kind="file", filename="avatar.png"),
        ]),
    ))
    return project


def tree_shape(folder: Folder):
    """Names, methods, URLs and bodies of a tree, without ids."""
    shape = []
    for child in folder.children:
        if isinstance(child, Folder):
            shape.append((child.name, tree_shape(child)))
        else:
            request = child.request
            shape.append((
                child.name,
                request.method,
                request.url,
                request.query_params,
                request.headers,
                [(c.name, c.value) for c in request.cookies],
                request.body.model_dump(),
                request.auth.model_dump(),
            ))
    return shape


class TestRegistry:

    def test_formats(self):
        assert set(PARSERS) == {"postman", "insomnia", "openapi", "native"}
        assert set(GENERATORS) == set(PARSERS)


class TestPostman:

    def test_round_trip(self, project):
        collection = json.loads(json.dumps(generate_postman(project)))

        imported = parse_postman(collection)

        assert imported.name == "Shop API"
        assert imported.description == "Orders and users"
        assert imported.authorization == project.authorization
        assert tree_shape(imported.root) == tree_shape(project.root)

    def test_export_layout(self, project):
        collection = generate_postman(project)

        assert collection["info"]["schema"].endswith("/v2.1.0/collection.json")
        users = collection["item"][0]
        assert users["name"] == "Users"
        url = users["item"][0]["request"]["url"]
        assert url["raw"] == "https://api.example.com/users?page=1"
        assert url["host"] == ["api", "example", "com"]
        assert url["path"] == ["users"]
        assert collection["variable"][0]["key"] == "BASE_URL"

    def test_collection_variables_become_environment(self, project):
        imported = parse_postman(generate_postman(project))

        assert [env.name for env in imported.environments] == ["Imported Variables"]
        assert imported.active_environment_id == imported.environments[0].id
        assert [(v.key, v.value) for v in imported.environments[0].variables] == [
            ("BASE_URL", "https://api.example.com"),
        ]

    def test_loose_v20_collection(self):
        collection = {
            "info": {"name": "Legacy", "description": {"content": "old"}},
            "item": [
                {"name": "Plain", "request": "https://example.com/a?x=1"},
                {
                    "name": "Detailed",
                    "request": {
                        "method": "delete",
                        "url": "https://example.com/b",
                        "header": [
                            {"key": "X-On", "value": "1"},
                            {"key": "X-Off", "value": "0", "disabled": True},
                            {"key": "Cookie", "value": "a=1; b=2"},
                        ],
                        "auth": {"type": "basic", "basic": {"username": "u", "password": "p"}},
                        "body": {"mode": "raw", "raw": "<x/>", "options": {"raw": {"language": "xml"}}},
                    },
                },
                "not an item",
            ],
        }

        imported = parse_postman(collection)

        plain, detailed = imported.root.children
        assert imported.description == "old"
        assert (plain.request.url, plain.request.query_params) == ("https://example.com/a", {"x": "1"})
        assert detailed.request.method == "DELETE"
        assert detailed.request.headers == {"X-On": "1"}
        assert [(c.name, c.value) for c in detailed.request.cookies] == [("a", "1"), ("b", "2")]
        assert detailed.request.auth == BasicAuth(username="u", password="p")
        assert detailed.request.body == RawBody(content="<x/>", content_type="application/xml")
        assert imported.environments == []
        assert imported.authorization is None

    @pytest.mark.parametrize("data", [None, [], {"item": []}, {"info": {}, "item": "x"}])
    def test_rejects_non_collections(self, data):
        with pytest.raises(InvalidImportError):
            parse_postman(data)


class TestInsomnia:

    def test_round_trip(self, project):
        export = generate_insomnia(project)

        imported = parse_insomnia(export)

        assert imported.name == "Shop API"
        assert tree_shape(imported.root) == tree_shape(project.root)
        assert [env.name for env in imported.environments] == ["Development"]
        assert imported.environments[0].variables[0].key == "BASE_URL"

    def test_export_layout(self, project):
        export = generate_insomnia(project)

        assert export["__export_format"] == 4
        types = [r["_type"] for r in export["resources"]]
        assert types[:2] == ["workspace", "environment"]
        assert "cookie_jar" in types
        assert all(r["_id"].split("_")[0] in {"wrk", "env", "jar", "fld", "req"} for r in export["resources"])

    def test_children_follow_sort_key(self):
        export = {
            "resources": [
                {"_id": "wrk_1", "_type": "workspace", "name": "W"},
                {"_id": "req_b", "_type": "request", "parentId": "wrk_1", "name": "B", "metaSortKey": 2},
                {"_id": "req_a", "_type": "request", "parentId": "wrk_1", "name": "A", "metaSortKey": -5},
                {"_id": "fld_1", "_type": "request_group", "parentId": "wrk_1", "name": "F", "metaSortKey": 0},
                {"_id": "req_c", "_type": "request", "parentId": "fld_1", "name": "C", "method": "patch"},
            ]
        }

        imported = parse_insomnia(export)

        assert [c.name for c in imported.root.children] == ["A", "F", "B"]
        assert imported.root.children[1].children[0].request.method == "PATCH"
        assert imported.environments == []

    def test_parent_loops_terminate(self):
        export = {
            "resources": [
                {"_id": "wrk_1", "_type": "workspace", "name": "W"},
                {"_id": "fld_1", "_type": "request_group", "parentId": "wrk_1", "name": "F"},
                {"_id": "fld_1", "_type": "request_group", "parentId": "fld_1", "name": "Loop"},
            ]
        }

        imported = parse_insomnia(export)

        folders = [n for n in iter_items(imported.root) if isinstance(n, Folder)]
        assert [f.name for f in folders] == ["Root", "F"]

    @pytest.mark.parametrize("data", [{}, {"resources": "x"}, {"resources": [{"_type": "request"}]}])
    def test_rejects_invalid_exports(self, data):
        with pytest.raises(InvalidImportError):
            parse_insomnia(data)


class TestOpenApi:

    document = {
        "openapi": "3.0.3",
        "info": {"title": "Users", "description": "User service"},
        "servers": [{"url": "https://api.example.com"}],
        "paths": {
            "/users": {
                "parameters": [{"name": "X-Trace", "in": "header"}],
                "get": {
                    "tags": ["users/admin"],
                    "summary": "List users",
                    "parameters": [{"name": "page", "in": "query", "schema": {"example": 1}}],
                },
                "post": {
                    "operationId": "createUser",
                    "requestBody": {"content": {"application/json": {"example": {"name": "Ada"}}}},
                },
            },
            "/health": {"get": {}, "x-extension": {}},
        },
    }

    def test_parse(self):
        imported = parse_openapi(self.document)

        assert imported.name == "Users"
        assert imported.base_url == "https://api.example.com"
        users, create, health = imported.root.children
        assert users.name == "users"
        admin = users.children[0]
        assert admin.name == "admin"
        listing = admin.children[0]
        assert listing.name == "List users"
        assert listing.request.url == "/users"
        assert listing.request.query_params == {"page": "1"}
        assert listing.request.headers == {"X-Trace": ""}
        assert create.name == "createUser"
        assert create.request.method == "POST"
        assert json.loads(create.request.body.content) == {"name": "Ada"}
        assert health.name == "GET /health"

    def test_rejects_documents_without_paths(self):
        with pytest.raises(InvalidImportError):
            parse_openapi({"openapi": "3.0.3"})

    def test_generate(self):
        project = new_project("Users")
        project.base_url = "{{BASE_URL}}"
        root = project.root
        folder = add_folder(root, root.id, "Accounts")
        add_request(root, folder, "List users", ApiRequest(
            url="{{BASE_URL}}/users",
            query_params={"page": "{{PAGE}}"},
            body=RawBody(content='{"a": "{{PAGE}}"}', content_type="application/json"),
        ))
        add_request(root, root.id, "External", ApiRequest(method="DELETE", url="https://other.com/x"))

        def resolver(text):
            return text.replace("{{BASE_URL}}", "https://api.example.com").replace("{{PAGE}}", "2")

        document = generate_openapi(project, resolver)

        assert document["openapi"] == "3.0.3"
        assert document["servers"] == [{"url": "https://api.example.com"}]
        operation = document["paths"]["/users"]["get"]
        assert operation["operationId"] == "list_users"
        assert operation["tags"] == ["Accounts"]
        assert operation["parameters"][0]["schema"]["example"] == "2"
        assert operation["requestBody"]["content"]["application/json"]["example"] == {"a": "2"}
        external = document["paths"]["/x"]["delete"]
        assert external["servers"] == [{"url": "https://other.com"}]
        assert "tags" not in external

    def test_generated_document_parses_back(self, project):
        imported = parse_openapi(generate_openapi(project))

        names = [node.name for node in iter_items(imported.root) if isinstance(node, RequestFile)]
        assert sorted(names) == ["Create user", "List users", "Login", "Upload"]


class TestCurl:

    def test_parse_full_command(self):
        command = (
            "curl -X POST 'https://api.example.com/users?page=2' \\\n"
            "  -H 'Content-Type: application/json' \\\n"
            "  -d '{\"a\":1}' -b 'sid=abc; theme=dark' -u 'user:pw' -k -L"
        )

        request = parse_curl(command)

        assert request.method == "POST"
        assert request.url == "https://api.example.com/users"
        assert request.query_params == {"page": "2"}
        assert request.headers == {"Content-Type": "application/json"}
        assert json.loads(request.body.content) == {"a": 1}
        assert request.body.content_type == "application/json"
        assert [(c.name, c.value) for c in request.cookies] == [("sid", "abc"), ("theme", "dark")]
        assert request.auth == BasicAuth(username="user", password="pw")
        assert request.verify_ssl is False
        assert request.follow_redirects is True

    def test_data_without_method_is_post(self):
        request = parse_curl("curl https://x.io/form -H 'Content-Type: application/x-www-form-urlencoded' -d 'a=1&b=two+words'")

        assert request.method == "POST"
        assert request.body == FormUrlEncodedBody(fields={"a": "1", "b": "two words"})

    def test_form_fields(self):
        request = parse_curl("curl --url https://x.io/up -F title=avatar -F file=@me.png")

        assert request.method == "POST"
        assert request.body.fields == [
            MultipartField(name="title", value="avatar"),
            MultipartField(name="file", kind="file", filename="me.png"),
        ]

    def test_plain_get(self):
        request = parse_curl("curl https://x.io")
        assert (request.method, request.url) == ("GET", "https://x.io")
        assert request.body.type == "none"

    @pytest.mark.parametrize("command", ["", "wget https://x.io", "curl -H 'A: b'", "curl 'unterminated"])
    def test_rejects_invalid_commands(self, command):
        with pytest.raises(InvalidImportError):
            parse_curl(command)

    def test_generate(self):
        request = ApiRequest(
            method="PATCH",
            url="https://x.io/items",
            query_params={"id": "7"},
            headers={"X-Empty": "", "Accept": "*/*"},
            auth=BearerAuth(token="t"),
            verify_ssl=False,
            follow_redirects=False,
        )

        command = generate_curl(request)

        lines = command.split(" \\\n  ")
        assert lines[:5] == ["curl", "--request", "PATCH", "--url", "'https://x.io/items?id=7'"]
        assert "'X-Empty: '" not in command
        assert "'Authorization: Bearer t'" in lines
        assert "--insecure" in lines
        assert "--location" not in lines

    def test_generated_command_parses_back(self):
        request = ApiRequest(
            method="PUT",
            url="https://x.io/it's",
            headers={"Accept": "application/json"},
            cookies=[Cookie(name="sid", value="1")],
            body=RawBody(content='{"a": 1}', content_type="application/json"),
            auth=BasicAuth(username="u", password="p"),
        )

        parsed = parse_curl(generate_curl(request))

        assert parsed.method == "PUT"
        assert parsed.url == "https://x.io/it's"
        assert parsed.headers == {"Accept": "application/json", "Content-Type": "application/json"}
        assert [(c.name, c.value) for c in parsed.cookies] == [("sid", "1")]
        assert json.loads(parsed.body.content) == {"a": 1}
        assert parsed.auth == request.auth


class TestNative:

    def test_round_trip_rekeys_everything(self, project):
        dump = json.loads(json.dumps(generate_native(project)))

        imported = parse_native(dump)

        assert dump["format"] == "api-workspace"
        assert imported.name == project.name
        assert imported.authorization == project.authorization
        assert tree_shape(imported.root) == tree_shape(project.root)
        assert collect_ids(imported.root).isdisjoint(collect_ids(project.root))
        assert imported.environments[0].id != project.environments[0].id
        assert imported.active_environment_id == imported.environments[0].id

    def test_bare_project_is_accepted(self, project):
        imported = parse_native(project.model_dump(mode="json"))
        assert imported.name == project.name

    @pytest.mark.parametrize("data", [
        None,
        {"format": "api-workspace", "project": None},
        {"name": "x"},
        {"root": {"id": "r", "name": "Root", "children": [{"type": "unknown"}]}},
    ])
    def test_rejects_invalid_dumps(self, data):
        with pytest.raises(InvalidImportError):
            parse_native(data)

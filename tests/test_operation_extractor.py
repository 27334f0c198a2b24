"""
tests/test_operation_extractor.py
Unit tests for apigen_ts.operation_extractor.

Tests cover:
- Operation classification by declared type and HTTP method
- Operation naming and path resolution
- Binding symbols for nested exposures
- Mandatory path parameters
- List-params synthesis (pagination cascade, filters)
- Custom input/output DTO extraction, multipart detection, overrides
"""

from __future__ import annotations

from typing import Any, Dict, List

import pytest

from apigen_ts.errors import UnknownOperationKindError
from apigen_ts.models import ApiResourceShape, OperationShape
from apigen_ts.operation_extractor import (
    binding_symbol,
    classify_operation,
    operation_name,
    resolve_path,
)
from apigen_ts.registry import OperationKind


def _op(**data: Any) -> OperationShape:
    return OperationShape.model_validate(data)


def _single_resource(operations: List[Dict[str, Any]], **exposure: Any) -> Dict[str, Any]:
    return {
        "config": {"api_prefix": "/api"},
        "resources": [
            {
                "class": "App\\Entity\\Book",
                "fields": [
                    {"name": "id", "types": [{"builtin": "int"}]},
                    {"name": "title", "types": [{"builtin": "string"}]},
                ],
                "api_resources": [{"short_name": "Book", "operations": operations, **exposure}],
            }
        ],
    }


# ===========================================================================
# Pure helpers
# ===========================================================================


class TestClassification:

    @pytest.mark.parametrize(
        "op_type, kind",
        [
            ("GetCollection", OperationKind.LIST),
            ("Get", OperationKind.READ),
            ("Post", OperationKind.CREATE),
            ("Put", OperationKind.REPLACE),
            ("Patch", OperationKind.UPDATE),
            ("Delete", OperationKind.REMOVE),
        ],
    )
    def test_declared_type(self, op_type: str, kind: OperationKind) -> None:
        assert classify_operation(_op(type=op_type, method="GET")) == kind

    @pytest.mark.parametrize(
        "method, kind",
        [
            ("get", OperationKind.READ),
            ("POST", OperationKind.CREATE),
            ("PUT", OperationKind.REPLACE),
            ("PATCH", OperationKind.UPDATE),
            ("DELETE", OperationKind.REMOVE),
        ],
    )
    def test_method_fallback(self, method: str, kind: OperationKind) -> None:
        assert classify_operation(_op(type="HttpOperation", method=method)) == kind

    def test_unknown_method_raises(self) -> None:
        with pytest.raises(UnknownOperationKindError) as exc_info:
            classify_operation(_op(method="OPTIONS", name="ping"))
        assert exc_info.value.context["method"] == "OPTIONS"
        assert exc_info.value.context["name"] == "ping"


class TestNamingAndPaths:

    def test_operation_name(self) -> None:
        assert operation_name(_op(name="publish"), OperationKind.CREATE) == "publish"
        assert operation_name(_op(name="_api_/posts_get"), OperationKind.READ) == "read"
        assert operation_name(_op(), OperationKind.LIST) == "list"

    @pytest.mark.parametrize(
        "template, kind, expected",
        [
            ("/posts/{id}", OperationKind.READ, "/api/posts"),
            ("/posts/{id}{._format}", OperationKind.UPDATE, "/api/posts"),
            ("/posts/{slug}", OperationKind.REPLACE, "/api/posts"),
            ("/posts/{id}", OperationKind.REMOVE, "/api/posts/{id}"),
            ("/posts{._format}", OperationKind.LIST, "/api/posts"),
            ("/posts/{id}/publish", OperationKind.CREATE, "/api/posts/{id}/publish"),
        ],
    )
    def test_resolve_path(self, template: str, kind: OperationKind, expected: str) -> None:
        assert resolve_path("/api", template, kind) == expected

    def test_binding_symbol(self) -> None:
        top = ApiResourceShape.model_validate({"short_name": "Comment"})
        nested = ApiResourceShape.model_validate({
            "short_name": "Comment",
            "uri_variables": [{"parameter": "postId", "from_class": "App\\Entity\\Post"}],
        })
        own = ApiResourceShape.model_validate({
            "short_name": "Comment",
            "uri_variables": [{"parameter": "id", "from_class": "App\\Entity\\Comment"}],
        })
        assert binding_symbol("App\\Entity\\Comment", top) == "comment"
        assert binding_symbol("App\\Entity\\Comment", nested) == "postComment"
        assert binding_symbol("App\\Entity\\Comment", own) == "comment"


# ===========================================================================
# Extraction over the reference document
# ===========================================================================


class TestExampleOperations:

    def test_post_operations(self, example_state) -> None:
        entry = example_state.operations.get("App\\Entity\\Post")
        assert entry.target_file == "endpoint/Post"
        assert list(entry.bindings) == ["post"]
        assert list(entry.operations) == ["list", "read", "create", "update", "remove", "publish"]

    def test_post_paths(self, example_state) -> None:
        ops = example_state.operations.get("App\\Entity\\Post").operations
        assert ops["list"].resolved_path == "/api/posts"
        assert ops["read"].resolved_path == "/api/posts"
        assert ops["update"].resolved_path == "/api/posts"
        assert ops["remove"].resolved_path == "/api/posts/{id}"
        assert ops["create"].uri_template == "/posts"

    def test_custom_operation(self, example_state) -> None:
        publish = example_state.operations.get("App\\Entity\\Post").operations["publish"]
        assert publish.kind == OperationKind.CREATE.value
        assert publish.helper == "create"
        assert publish.resolved_path == "/api/posts/{id}/publish"
        assert publish.input_type_ref == "Post"
        assert publish.output_type_ref == "PublishResult"
        assert example_state.types["PublishResult"].target_file == "interfaces/PublishResult"
        assert example_state.types["PublishResult"].is_addressable is False

    def test_security_is_kept(self, example_state) -> None:
        entry = example_state.operations.get("App\\Entity\\Post")
        assert entry.bindings["post"].security == "is_granted('ROLE_USER')"
        assert entry.operations["create"].security == "is_granted('ROLE_AUTHOR')"

    def test_multipart(self, example_state) -> None:
        upload = example_state.operations.get("App\\Entity\\Author").operations["uploadAvatar"]
        assert upload.is_multipart is True
        assert upload.http_method == "POST"

    def test_nested_binding(self, example_state) -> None:
        entry = example_state.operations.get("App\\Entity\\Comment")
        assert list(entry.bindings) == ["comment", "postComment"]
        nested = entry.bindings["postComment"]
        assert list(nested.operations) == ["list", "create"]
        assert nested.operations["list"].mandatory_path_params == ["postId"]
        assert nested.operations["create"].mandatory_path_params == ["postId"]
        assert nested.operations["list"].resolved_path == "/api/posts/{postId}/comments"
        assert entry.bindings["comment"].operations["read"].mandatory_path_params == []

    def test_entry_dependencies(self, example_state) -> None:
        entry = example_state.operations.get("App\\Entity\\Post")
        assert entry.dependencies["interfaces/Post"] == {"Post"}
        assert entry.dependencies["interfaces/PublishResult"] == {"PublishResult"}


class TestListParams:

    def test_example_post_list_params(self, example_state) -> None:
        params = example_state.types["PostListParams"]
        assert params.target_file == "endpoint/Post"
        assert params.extends == ["ListParams<Post>"]
        assert {name: p.ts_type_expression for name, p in params.properties.items()} == {
            "page": "number",
            "itemsPerPage": "number",
            "title": "string",
            "author": "HydraIri<Author>|Array<HydraIri<Author>>",
            "order": 'Partial<Record<"title"|"publishedAt", Order>>',
            "publishedAt": 'Partial<Record<"before"|"after", DateTime>>',
            "status": "null|PostStatus",
        }

    def test_list_params_dependencies(self, example_state) -> None:
        deps = example_state.types["PostListParams"].dependencies
        assert deps["interfaces/ApiTypes"] >= {"ListParams", "DateTime", "HydraIri"}
        assert deps["interfaces/Enum"] == {"Order"}
        assert deps["interfaces/Post"] == {"Post", "PostStatus"}
        assert deps["interfaces/Author"] == {"Author"}

    def test_list_params_reference(self, example_state) -> None:
        ops = example_state.operations.get("App\\Entity\\Post").operations
        assert ops["list"].list_params_type_ref == "PostListParams"
        assert ops["read"].list_params_type_ref is None

    def test_minimal_scenario(self, build_state, minimal_metadata_dict: Dict[str, Any]) -> None:
        params = build_state(minimal_metadata_dict).types["PostListParams"]
        assert list(params.properties) == ["page"]
        assert params.properties["page"].required is False

    def test_operation_overrides_resource_and_global(self, build_state) -> None:
        state = build_state(_single_resource(
            [{"type": "GetCollection", "method": "GET", "pagination_enabled": False}],
            pagination_client_enabled=True,
        ))
        params = state.types["BookListParams"]
        assert "page" not in params.properties
        assert params.properties["pagination"].ts_type_expression == "BooleanEnum"
        assert params.dependencies["interfaces/Enum"] == {"BooleanEnum"}

    def test_global_partial_and_items_per_page(self, build_state) -> None:
        raw = _single_resource([{"type": "GetCollection", "method": "GET"}])
        raw["config"]["pagination"] = {
            "client_items_per_page": True,
            "client_partial": True,
            "items_per_page_parameter_name": "perPage",
        }
        params = build_state(raw).types["BookListParams"]
        assert list(params.properties) == ["page", "perPage", "partial"]

    def test_client_items_per_page_false_hides_field(self, build_state) -> None:
        raw = _single_resource(
            [{"type": "GetCollection", "method": "GET", "pagination_client_items_per_page": False}]
        )
        raw["config"]["pagination"] = {"client_items_per_page": True}
        params = build_state(raw).types["BookListParams"]
        assert "itemsPerPage" not in params.properties


class TestExtractionPolicies:

    def test_unexposed_operations_are_skipped(self, build_state) -> None:
        state = build_state(_single_resource([
            {"type": "Get", "method": "GET"},
            {"type": "Delete", "method": "DELETE", "exposed": False},
        ]))
        assert list(state.operations.get("App\\Entity\\Book").operations) == ["read"]

    def test_last_declaration_wins(self, build_state) -> None:
        state = build_state(_single_resource([
            {"type": "Get", "method": "GET", "uri_template": "/books/{id}"},
            {"type": "Get", "method": "GET", "uri_template": "/library/books/{id}"},
        ]))
        read = state.operations.get("App\\Entity\\Book").operations["read"]
        assert read.resolved_path == "/api/library/books"

    def test_request_method_override(self, build_state) -> None:
        state = build_state(_single_resource([
            {
                "name": "export",
                "method": "GET",
                "uri_template": "/books/export",
                "request_method": {"kind": "download", "generic_params": ["Blob"]},
            }
        ]))
        export = state.operations.get("App\\Entity\\Book").operations["export"]
        assert export.kind == "read"
        assert export.helper == "download"
        assert export.generic_params == ["Blob"]

    def test_exposure_template(self, build_state) -> None:
        state = build_state(_single_resource(
            [{"type": "GetCollection", "method": "GET"}],
            uri_template="/shelves/{shelfId}/books",
            uri_variables=[{"parameter": "shelfId", "from_class": "App\\Entity\\Shelf"}],
        ))
        entry = state.operations.get("App\\Entity\\Book")
        assert list(entry.bindings) == ["shelfBook"]
        assert entry.operations["list"].mandatory_path_params == ["shelfId"]

    def test_unknown_operation_kind_is_fatal(self, build_state) -> None:
        with pytest.raises(UnknownOperationKindError):
            build_state(_single_resource([{"method": "OPTIONS"}]))

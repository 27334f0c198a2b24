"""
tests/test_templates.py
Unit tests for apigen_ts.templates (TypeScript composition and assembly).

Tests cover:
- Alias, interface, factory and enum rendering
- Same-file ordering by dependency count
- Import blocks with relative paths
- Endpoint bindings: helpers, generics, security comments, multipart,
  child endpoints, EndpointFactory and generate<Type>Iri
- Fragment assembly by priority
"""

from __future__ import annotations

from typing import Any, Dict, List

import pytest

from apigen_ts.registry import (
    Fragment,
    GenerationState,
    PropertyDescriptor,
    TypeDescriptor,
    TypeKind,
    TypeUnion,
)
from apigen_ts.templates import (
    ENDPOINT_PRIORITY,
    IMPORT_PRIORITY,
    TYPE_PRIORITY,
    TypeScriptComposer,
    assemble,
    assemble_file,
)


def _render(state: GenerationState) -> Dict[str, str]:
    TypeScriptComposer(state).compose()
    return assemble(state.files)


def _lines(body: str) -> List[str]:
    return body.split("\n")


@pytest.fixture()
def example_files(example_state: GenerationState) -> Dict[str, str]:
    return _render(example_state)


@pytest.fixture()
def minimal_files(build_state, minimal_metadata_dict: Dict[str, Any]) -> Dict[str, str]:
    return _render(build_state(minimal_metadata_dict))


# ===========================================================================
# Type rendering
# ===========================================================================


class TestTypeRendering:

    def test_minimal_interface_file(self, minimal_files: Dict[str, str]) -> None:
        assert minimal_files["interfaces/Post"] == "\n".join([
            'import { HydraIri, HydraItem } from "./ApiTypes";',
            'import { Author } from "./Author";',
            "",
            "export interface Post extends HydraItem {",
            "    id?: number;",
            "    title?: string;",
            "    author?: Author|HydraIri<Author>;",
            "}",
            "",
            "export function postFactory(post: Partial<Post> = {}): Post {",
            "    return {",
            "        id: null,",
            "        title: null,",
            "        author: null,",
            "        ...post,",
            "    } as Post;",
            "}",
            "",
        ])

    def test_alias_rendering(self) -> None:
        composer = TypeScriptComposer(GenerationState())
        alias = TypeDescriptor(
            name="HydraIri",
            kind=TypeKind.ALIAS,
            target_file="interfaces/ApiTypes",
            generics="T extends HydraItem",
            alias="string",
        )
        assert composer.render_type(alias) == ["export type HydraIri<T extends HydraItem> = string;"]

    def test_quoted_readonly_keys(self, example_files: Dict[str, str]) -> None:
        api_types = example_files["interfaces/ApiTypes"]
        assert "export interface HydraItem<T = any> {" in api_types
        assert '    readonly "@id"?: HydraIri<T>;' in api_types
        assert '    "hydra:member": Array<T>;' in api_types
        assert "export interface ListParams<T extends HydraItem> {\n}" in api_types

    def test_enum_rendering(self, example_files: Dict[str, str]) -> None:
        assert example_files["interfaces/Enum"] == "\n".join([
            "export enum BooleanEnum {",
            '    True = "true",',
            '    False = "false",',
            "}",
            "",
            "export enum Order {",
            '    Asc = "asc",',
            '    Desc = "desc",',
            "}",
            "",
        ])

    def test_bare_enum_members(self) -> None:
        composer = TypeScriptComposer(GenerationState())
        enum = TypeDescriptor(
            name="Level",
            kind=TypeKind.NATIVE_ENUM,
            target_file="interfaces/Enum",
            members={"Low": None, "High": None},
            doc_block=["@see src/Enum/Level.php"],
        )
        assert composer.render_type(enum) == [
            "// @see src/Enum/Level.php",
            "export enum Level {",
            "    Low,",
            "    High,",
            "}",
        ]

    def test_example_post_interface(self, example_files: Dict[str, str]) -> None:
        lines = _lines(example_files["interfaces/Post"])
        start = lines.index("// @see src/Entity/Post.php")
        assert lines[start + 1:start + 11] == [
            "export interface Post extends HydraItem {",
            "    readonly id?: number;",
            "    title: string;",
            "    body?: null|string;",
            "    status?: PostStatus;",
            "    publishedAt?: null|DateTime;",
            "    author: Author|HydraIri<Author>;",
            "    readonly comments?: Array<Comment|HydraIri<Comment>>;",
            "    tags?: Array<string>;",
            "}",
        ]

    def test_factory_skips_readonly_and_uses_defaults(self, example_files: Dict[str, str]) -> None:
        body = example_files["interfaces/Post"]
        factory = body[body.index("export function postFactory"):body.index("export function preparePostPayload")]
        assert _lines(factory.strip()) == [
            "export function postFactory(post: Partial<Post> = {}): Post {",
            "    return {",
            '        title: "",',
            "        body: null,",
            "        status: PostStatus.Draft,",
            "        publishedAt: null,",
            "        author: null,",
            "        tags: [],",
            "        ...post,",
            "    } as Post;",
            "}",
        ]

    def test_same_file_dependency_comes_first(self, example_files: Dict[str, str]) -> None:
        body = example_files["interfaces/Post"]
        assert body.index("export enum PostStatus {") < body.index("export interface Post ")
        assert body.index("export interface Post ") < body.index("export function preparePostPayload")

    def test_post_imports(self, example_files: Dict[str, str]) -> None:
        lines = _lines(example_files["interfaces/Post"])
        assert lines[:5] == [
            'import { generateAuthorIri } from "../endpoint/Author";',
            'import { generateCommentIri } from "../endpoint/Comment";',
            'import { DateTime, HydraIri, HydraItem } from "./ApiTypes";',
            'import { Author } from "./Author";',
            'import { Comment } from "./Comment";',
        ]
        assert lines[5] == ""

    def test_inherited_lines_are_omitted_but_factory_keeps_them(self, build_state) -> None:
        state = build_state({
            "resources": [
                {
                    "class": "App\\Entity\\Post",
                    "fields": [
                        {"name": "id", "types": [{"builtin": "int"}], "writable": False},
                        {"name": "title", "types": [{"builtin": "string"}]},
                    ],
                    "api_resources": [{"short_name": "Post", "operations": [{"type": "Get"}]}],
                },
                {
                    "class": "App\\Entity\\Comment",
                    "parent": "App\\Entity\\Post",
                    "fields": [
                        {"name": "id", "types": [{"builtin": "int"}], "writable": False},
                        {"name": "title", "types": [{"builtin": "string"}]},
                        {"name": "content", "types": [{"builtin": "string"}], "default": "n/a"},
                    ],
                    "api_resources": [{"short_name": "Comment", "operations": [{"type": "Get"}]}],
                },
            ]
        })
        body = _render(state)["interfaces/Comment"]
        assert "export interface Comment extends Post, HydraItem {\n    content?: string;\n}" in body
        assert "        title: null,\n        content: \"n/a\",\n        ...comment," in body
        assert 'import { Post } from "./Post";' in body

    def test_unknown_kind_cannot_be_rendered(self) -> None:
        composer = TypeScriptComposer(GenerationState())
        with pytest.raises(ValueError):
            composer.render_type(TypeDescriptor(name="string", kind=TypeKind.BUILTIN))


# ===========================================================================
# Endpoint rendering
# ===========================================================================


class TestEndpointRendering:

    def test_minimal_endpoint_file(self, minimal_files: Dict[str, str]) -> None:
        assert minimal_files["endpoint/Post"] == "\n".join([
            'import { RequestConfig, list, read } from "../ApiMethods";',
            'import { HydraIri, ListParams, generateIri } from "../interfaces/ApiTypes";',
            'import { Post } from "../interfaces/Post";',
            "",
            "export interface PostListParams extends ListParams<Post> {",
            "    page?: number;",
            "}",
            "",
            "export const post = {",
            '    list: list<Post, PostListParams>("/api/posts", []),',
            '    read: read<Post>("/api/posts", []),',
            "}",
            "",
            "export function generatePostIri(id: Partial<Post>|string|number|null): HydraIri<Post> {",
            '    return generateIri<Post>(id, "/api/posts") as HydraIri<Post>;',
            "}",
            "",
            "export function postEndpointFactory(defaultConfig?: RequestConfig) {",
            "    return {",
            '        list: list<Post, PostListParams>("/api/posts", [], defaultConfig),',
            '        read: read<Post>("/api/posts", [], defaultConfig),',
            "    }",
            "}",
            "",
        ])

    def test_post_binding(self, example_files: Dict[str, str]) -> None:
        lines = _lines(example_files["endpoint/Post"])
        start = lines.index("export const post = {")
        assert lines[start - 1] == "// is_granted('ROLE_USER')"
        assert lines[start + 1:start + 11] == [
            '    list: list<Post, PostListParams>("/api/posts", []),',
            '    read: read<Post>("/api/posts", []),',
            "    // @security: is_granted('ROLE_AUTHOR')",
            '    create: create<Post, Post>("/api/posts", []),',
            '    update: update<Post, Post>("/api/posts", []),',
            '    remove: remove<Post>("/api/posts/{id}", []),',
            '    publish: create<Post, PublishResult>("/api/posts/{id}/publish", []),',
            "    comments: postComment,",
            "}",
            "",
        ]

    def test_factory_twin(self, example_files: Dict[str, str]) -> None:
        body = example_files["endpoint/Post"]
        assert "// is_granted('ROLE_USER')\nexport function postEndpointFactory(defaultConfig?: RequestConfig) {" in body
        assert "        // @security: is_granted('ROLE_AUTHOR')\n" in body
        assert '        publish: create<Post, PublishResult>("/api/posts/{id}/publish", [], defaultConfig),' in body
        assert "        comments: postComment,\n    }\n}" in body

    def test_post_endpoint_imports(self, example_files: Dict[str, str]) -> None:
        lines = _lines(example_files["endpoint/Post"])
        assert 'import { RequestConfig, create, list, read, remove, update } from "../ApiMethods";' in lines
        assert 'import { postComment } from "./Comment";' in lines
        assert 'import { Post, PostStatus } from "../interfaces/Post";' in lines
        assert 'import { PublishResult } from "../interfaces/PublishResult";' in lines
        assert 'import { Order } from "../interfaces/Enum";' in lines

    def test_nested_binding(self, example_files: Dict[str, str]) -> None:
        body = example_files["endpoint/Comment"]
        assert "export const comment = {\n    read: read<Comment>(\"/api/comments\", []),\n}" in body
        assert (
            '    list: list<Comment, CommentListParams, "postId">("/api/posts/{postId}/comments", ["postId"]),'
            in body
        )
        assert '    create: create<Comment, Comment, "postId">("/api/posts/{postId}/comments", ["postId"]),' in body
        assert body.count("export function generateCommentIri(") == 1
        assert body.index("export function generateCommentIri(") < body.index("export const postComment = {")

    def test_multipart(self, example_files: Dict[str, str]) -> None:
        body = example_files["endpoint/Author"]
        assert '    uploadAvatar: multipart<Author, Author>("POST", "/api/authors/{id}/avatar", []),' in body
        assert (
            '        uploadAvatar: multipart<Author, Author>("POST", "/api/authors/{id}/avatar", [], defaultConfig),'
            in body
        )
        assert "multipart" in _lines(body)[0]

    def test_request_method_override(self, build_state) -> None:
        state = build_state({
            "config": {"api_prefix": "/api"},
            "resources": [
                {
                    "class": "App\\Entity\\Report",
                    "fields": [{"name": "id", "types": [{"builtin": "int"}]}],
                    "api_resources": [
                        {
                            "short_name": "Report",
                            "security_post_denormalize": "is_granted('EDIT', object)",
                            "operations": [
                                {
                                    "name": "export",
                                    "method": "GET",
                                    "uri_template": "/reports/export",
                                    "request_method": {"kind": "download"},
                                },
                                {
                                    "name": "csv",
                                    "method": "GET",
                                    "uri_template": "/reports/csv",
                                    "request_method": {"kind": "downloadAsString", "generic_params": ["string"]},
                                },
                            ],
                        }
                    ],
                }
            ],
        })
        body = _render(state)["endpoint/Report"]
        assert "    // @securityPostDenormalize: is_granted('EDIT', object)" in body
        assert '    export: download<Report>("/api/reports/export", "GET", []),' in body
        assert '    csv: downloadAsString<string>("/api/reports/csv", "GET", []),' in body

    def test_entry_without_operations_renders_nothing(self, build_state) -> None:
        state = build_state({
            "resources": [
                {
                    "class": "App\\Entity\\Tag",
                    "fields": [{"name": "id", "types": [{"builtin": "int"}]}],
                    "api_resources": [{"short_name": "Tag", "operations": []}],
                }
            ]
        })
        composer = TypeScriptComposer(state)
        assert composer.render_endpoint(state.operations.get("App\\Entity\\Tag")) is None
        assert "endpoint/Tag" not in _render(state)


# ===========================================================================
# Assembly
# ===========================================================================


class TestAssembly:

    def test_fragments_sorted_by_priority(self) -> None:
        body = assemble_file(
            "endpoint/Post",
            [
                Fragment(body="low", priority=-100),
                Fragment(body="types", priority=TYPE_PRIORITY, imports={"interfaces/Post": {"Post"}}),
                Fragment(body="endpoint", priority=ENDPOINT_PRIORITY),
                Fragment(body="more types\n", priority=TYPE_PRIORITY),
            ],
        )
        assert body == (
            'import { Post } from "../interfaces/Post";\n\n'
            "types\n\nmore types\n\nendpoint\n\nlow\n"
        )

    def test_import_priority_is_highest(self) -> None:
        assert IMPORT_PRIORITY > TYPE_PRIORITY > ENDPOINT_PRIORITY

    def test_empty_fragments_produce_nothing(self) -> None:
        assert assemble_file("routes", [Fragment(body="\n\n")]) == ""

    def test_assemble_skips_empty_files(self) -> None:
        state = GenerationState()
        state.files.add_body("a", "export const a = 1;")
        state.files.add_body("b", "")
        assert assemble(state.files) == {"a": "export const a = 1;\n"}

    def test_composed_interface_from_descriptor(self) -> None:
        state = GenerationState()
        descriptor = TypeDescriptor(name="Box", kind=TypeKind.INTERFACE, target_file="interfaces/Box")
        descriptor.add_property(PropertyDescriptor(name="size.x", union=TypeUnion(["number"]), required=True))
        state.types.register(descriptor)
        assert _render(state)["interfaces/Box"] == 'export interface Box {\n    "size.x": number;\n}\n'

"""The validation walk.

:func:`validate` visits a document once, in a fixed order, and returns every
issue it finds:

1. ``info`` and root ``externalDocs``
2. dialect root rules (``host``/``basePath`` or ``servers``)
3. top-level tags
4. operationId uniqueness across paths, webhooks, reusable path items and
   callbacks
5. path items under ``paths`` (and ``webhooks`` in 3.1) with their
   operations, parameters, bodies, responses and schemas
6. every component, each checked where it is declared
7. root ``security``
8. unused components and tags

Nothing is fail-fast: a broken reference is reported and the walk moves on.
The order of the returned list follows the order above and, inside each
step, the order of the document, so equal documents give equal lists.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator, Optional, Sequence

from specval.exceptions import DocumentInvalid
from specval.models import (
    AnySpecDocument,
    ComponentKind,
    Dialect,
    Header,
    Link,
    MediaType,
    Operation,
    Parameter,
    ParameterLocation,
    PathItem,
    PointerStyle,
    Reference,
    RequestBody,
    Response,
)
from specval.options import Options
from specval.parser.resolver import V2_CONTAINERS, ComponentPointer, bare_reference, pointer_for
from specval.validation.context import Path, ValidationContext
from specval.validation.issues import IssueKind, ValidationIssue
from specval.validation.rules import (
    check_example,
    check_external_docs,
    check_info,
    check_required_string,
    check_schema,
    check_security_requirements,
    check_security_scheme,
    check_server,
    check_servers,
)

logger = logging.getLogger(__name__)

COMPONENT_NAME = re.compile(r"^[A-Za-z0-9._-]+$")
RESPONSE_CODE = re.compile(r"^(default|[1-5]XX|[1-5][0-9][0-9])$")
PATH_TEMPLATE = re.compile(r"\{([^{}/]+)\}")

UNUSED_FLAGS: dict[ComponentKind, Options] = {
    ComponentKind.SCHEMAS: Options.IGNORE_UNUSED_SCHEMAS,
    ComponentKind.RESPONSES: Options.IGNORE_UNUSED_RESPONSES,
    ComponentKind.PARAMETERS: Options.IGNORE_UNUSED_PARAMETERS,
    ComponentKind.EXAMPLES: Options.IGNORE_UNUSED_EXAMPLES,
    ComponentKind.REQUEST_BODIES: Options.IGNORE_UNUSED_REQUEST_BODIES,
    ComponentKind.HEADERS: Options.IGNORE_UNUSED_HEADERS,
    ComponentKind.SECURITY_SCHEMES: Options.IGNORE_UNUSED_SECURITY_SCHEMES,
    ComponentKind.LINKS: Options.IGNORE_UNUSED_LINKS,
    ComponentKind.CALLBACKS: Options.IGNORE_UNUSED_CALLBACKS,
    ComponentKind.PATH_ITEMS: Options.IGNORE_UNUSED_PATH_ITEMS,
}


def validate(document: AnySpecDocument, options: Options = Options.NONE) -> list[ValidationIssue]:
    """Check every cross-document rule of *document* and return the findings.

    Args:
        document: A document built by :func:`~specval.dialects.parse_document`.
        options: Rule families to switch off. ``Options.NONE`` checks everything.

    Returns:
        All issues in deterministic order; an empty list means valid.
    """
    from specval.dialects import adapter_for

    adapter = adapter_for(document.dialect)
    ctx = ValidationContext(document, options)
    walker = _Walker(ctx, document.dialect)

    check_info(ctx, document.info)
    check_external_docs(ctx, document.external_docs, ("externalDocs",))
    adapter.check_root(ctx, document)
    walker.tags(document)

    entry_points = list(adapter.iter_entry_points(document))
    walker.operation_ids(document, entry_points)
    for path, item in entry_points:
        route = path[1] if path[0] == "paths" else None
        if route is not None and not route.startswith("/"):
            ctx.report(path, IssueKind.INVALID_PATH_TEMPLATE, f"must start with '/', found '{route}'")
        walker.path_item(item, path, route)

    walker.components(document)
    check_security_requirements(ctx, document.security, ("security",))
    walker.unused(document)

    logger.debug("Validation finished with %d issue(s)", len(ctx.issues))
    return ctx.issues


def ensure_valid(document: AnySpecDocument, options: Options = Options.NONE) -> None:
    """Like :func:`validate`, but raise when anything is found.

    Raises:
        DocumentInvalid: Carrying the complete issue list.
    """
    issues = validate(document, options)
    if issues:
        raise DocumentInvalid(issues)


def component_path(kind: ComponentKind, name: str, style: PointerStyle) -> Path:
    """Structural location of a component inside its document."""
    if style == PointerStyle.ROOT:
        container = next(key for key, value in V2_CONTAINERS.items() if value == kind)
        return (container, name)
    return ("components", kind.value, name)


def iter_all_operations(
    document: AnySpecDocument, entry_points: Sequence[tuple[Path, PathItem]]
) -> Iterator[tuple[Path, Operation]]:
    """Yield every operation of *document* with its location.

    Besides the entry points this covers reusable path items and callbacks,
    both the reusable ones and those written inline on an operation.
    """
    style = document.components.pointer_style
    roots = list(entry_points)
    for name, item in document.components.path_items.items():
        roots.append((component_path(ComponentKind.PATH_ITEMS, name, style), item))
    for name, callback in document.components.callbacks.items():
        if isinstance(callback, Reference):
            continue
        callback_path = component_path(ComponentKind.CALLBACKS, name, style)
        roots.extend((callback_path + (expression,), item) for expression, item in callback.items())
    for path, item in roots:
        yield from _item_operations(item, path)


def _item_operations(item: PathItem, path: Path) -> Iterator[tuple[Path, Operation]]:
    for method, operation in item.iter_operations():
        operation_path = path + (method.value,)
        yield operation_path, operation
        for name, callback in operation.callbacks.items():
            if isinstance(callback, Reference):
                continue
            for expression, nested in callback.items():
                yield from _item_operations(nested, operation_path + ("callbacks", name, expression))


class _Walker:
    """Walks the document tree, reporting on the shared context."""

    def __init__(self, ctx: ValidationContext, dialect: Dialect) -> None:
        self.ctx = ctx
        self.is_v2 = dialect == Dialect.V2
        self.known_operation_ids: set[str] = set()

    # --- Tags and operation ids ---

    def tags(self, document: AnySpecDocument) -> None:
        seen: dict[str, int] = {}
        for i, tag in enumerate(document.tags):
            path: Path = ("tags", i)
            check_required_string(self.ctx, tag.name, path + ("name",))
            check_external_docs(self.ctx, tag.external_docs, path + ("externalDocs",))
            if tag.name in seen:
                if self.ctx.enabled(Options.IGNORE_DUPLICATE_TAGS):
                    self.ctx.report(
                        path,
                        IssueKind.DUPLICATE_IDENTIFIER,
                        f"tag '{tag.name}' is declared more than once",
                        related=[("tags", seen[tag.name])],
                    )
            else:
                seen[tag.name] = i

    def operation_ids(
        self, document: AnySpecDocument, entry_points: Sequence[tuple[Path, PathItem]]
    ) -> None:
        report = self.ctx.enabled(Options.IGNORE_NON_UNIQUE_OPERATION_IDS)
        first: dict[str, Path] = {}
        for path, operation in iter_all_operations(document, entry_points):
            op_id = operation.operation_id
            if not op_id:
                continue
            self.known_operation_ids.add(op_id)
            location = path + ("operationId",)
            if op_id not in first:
                first[op_id] = location
            elif report:
                self.ctx.report(
                    location,
                    IssueKind.DUPLICATE_IDENTIFIER,
                    f"operationId '{op_id}' is already in use",
                    related=[first[op_id]],
                )

    # --- Paths and operations ---

    def path_item(self, item: PathItem, path: Path, route: Optional[str] = None) -> None:
        ctx = self.ctx
        if item.ref is not None:
            ctx.follow(item.ref, path, ComponentKind.PATH_ITEMS)
        shared, complete = self.parameters(item.parameters, path + ("parameters",))
        check_servers(ctx, item.servers, path + ("servers",))
        for method, operation in item.iter_operations():
            self.operation(operation, path + (method.value,), route if complete else None, shared)

    def operation(
        self,
        op: Operation,
        path: Path,
        route: Optional[str],
        shared: list[Parameter],
    ) -> None:
        ctx = self.ctx
        declared_tags = {tag.name for tag in ctx.document.tags}
        for i, tag in enumerate(op.tags):
            ctx.used_tags.add(tag)
            if tag not in declared_tags and ctx.enabled(Options.IGNORE_MISSING_TAGS):
                ctx.report(path + ("tags", i), IssueKind.UNDECLARED_TAG_USED, f"tag '{tag}' is not declared")

        own, complete = self.parameters(op.parameters, path + ("parameters",))
        # Operation-level parameters override path-level ones with the same key.
        overridden = {p.key for p in own}
        effective = [p for p in shared if p.key not in overridden] + own
        if self.is_v2:
            self._v2_body_rules(effective, path + ("parameters",))
        # Template checks need every parameter; broken references are reported already.
        if route is not None and complete:
            self._route_parameters(route, effective, path)

        if op.request_body is not None:
            body_path = path + ("requestBody",)
            if isinstance(op.request_body, Reference):
                ctx.follow(op.request_body.ref, body_path, ComponentKind.REQUEST_BODIES)
            else:
                self.request_body(op.request_body, body_path)

        for code, response in op.responses.items():
            response_path = path + ("responses", code)
            if not RESPONSE_CODE.match(code):
                ctx.report(
                    response_path,
                    IssueKind.INVALID_RESPONSE_CODE,
                    f"'{code}' is not an HTTP status code, a range like 2XX, or 'default'",
                )
            self.ref_or_response(response, response_path)

        for name, callback in op.callbacks.items():
            callback_path = path + ("callbacks", name)
            if isinstance(callback, Reference):
                ctx.follow(callback.ref, callback_path, ComponentKind.CALLBACKS)
            else:
                self.callback(callback, callback_path)

        check_security_requirements(ctx, op.security, path + ("security",))
        check_servers(ctx, op.servers, path + ("servers",))
        check_external_docs(ctx, op.external_docs, path + ("externalDocs",))

    def callback(self, callback: dict[str, PathItem], path: Path) -> None:
        for expression, item in callback.items():
            self.path_item(item, path + (expression,))

    def _v2_body_rules(self, params: list[Parameter], path: Path) -> None:
        bodies = [p for p in params if p.location == ParameterLocation.BODY]
        if len(bodies) > 1:
            self.ctx.report(path, IssueKind.INVALID_PARAMETER, "at most one body parameter is allowed")
        if bodies and any(p.location == ParameterLocation.FORM_DATA for p in params):
            self.ctx.report(path, IssueKind.INVALID_PARAMETER, "body and formData parameters cannot be mixed")

    def _route_parameters(self, route: str, params: list[Parameter], path: Path) -> None:
        templated = PATH_TEMPLATE.findall(route)
        declared = {p.name for p in params if p.location == ParameterLocation.PATH}
        for name in templated:
            if name not in declared:
                self.ctx.report(
                    path + ("parameters",),
                    IssueKind.INVALID_PARAMETER,
                    f"path parameter '{name}' in '{route}' is not declared",
                )
        for name in sorted(declared - set(templated)):
            self.ctx.report(
                path + ("parameters",),
                IssueKind.INVALID_PARAMETER,
                f"path parameter '{name}' does not appear in '{route}'",
            )

    # --- Parameters ---

    def parameters(self, params: Sequence[Any], path: Path) -> tuple[list[Parameter], bool]:
        """Check one parameter list.

        Returns:
            The distinct resolvable parameters, and whether every reference
            in the list resolved.
        """
        ctx = self.ctx
        resolved: list[Parameter] = []
        complete = True
        first: dict[tuple[str, ParameterLocation], int] = {}
        for i, param in enumerate(params):
            item_path = path + (i,)
            if isinstance(param, Reference):
                target = None
                if ctx.follow(param.ref, item_path, ComponentKind.PARAMETERS) is not None:
                    target = ctx.resolve_quietly(param.ref, ComponentKind.PARAMETERS)
                if not isinstance(target, Parameter):
                    complete = False
                    continue
            else:
                self.parameter(param, item_path)
                target = param

            if target.key in first:
                if ctx.enabled(Options.IGNORE_DUPLICATE_PARAMETERS):
                    ctx.report(
                        item_path,
                        IssueKind.DUPLICATE_IDENTIFIER,
                        f"parameter '{target.name}' in {target.location.value} is already declared",
                        related=[path + (first[target.key],)],
                    )
            else:
                first[target.key] = i
                resolved.append(target)
        return resolved, complete

    def parameter(self, param: Parameter, path: Path) -> None:
        ctx = self.ctx
        check_required_string(ctx, param.name, path + ("name",))

        if self.is_v2:
            misplaced = param.location == ParameterLocation.COOKIE
        else:
            misplaced = param.location in (ParameterLocation.BODY, ParameterLocation.FORM_DATA)
        if misplaced:
            ctx.report(
                path + ("in",),
                IssueKind.INVALID_PARAMETER,
                f"'{param.location.value}' is not a parameter location in this version",
            )
        if param.location == ParameterLocation.PATH and not param.required:
            ctx.report(path + ("required",), IssueKind.INVALID_PARAMETER, "path parameters must be required")

        if param.schema_ is not None and param.content:
            ctx.report(path, IssueKind.INVALID_PARAMETER, "schema and content are mutually exclusive")
        elif param.schema_ is None and not param.content:
            ctx.report(path, IssueKind.INVALID_PARAMETER, "parameter must declare a schema or content")
        if len(param.content) > 1:
            ctx.report(path + ("content",), IssueKind.INVALID_PARAMETER, "content must have exactly one entry")

        if param.schema_ is not None:
            folded = self.is_v2 and param.location != ParameterLocation.BODY
            check_schema(ctx, param.schema_, path if folded else path + ("schema",))
        self.content(param.content, path + ("content",))
        self.examples(param.examples, path + ("examples",))

    # --- Bodies, responses, headers ---

    def content(self, content: dict[str, MediaType], path: Path) -> None:
        for media_type, media in content.items():
            if media.schema_ is not None:
                check_schema(self.ctx, media.schema_, path + (media_type, "schema"))
            self.examples(media.examples, path + (media_type, "examples"))

    def request_body(self, body: RequestBody, path: Path) -> None:
        self.content(body.content, path + ("content",))

    def ref_or_response(self, response: Any, path: Path) -> None:
        if isinstance(response, Reference):
            self.ctx.follow(response.ref, path, ComponentKind.RESPONSES)
        else:
            self.response(response, path)

    def response(self, response: Response, path: Path) -> None:
        ctx = self.ctx
        check_required_string(
            ctx, response.description, path + ("description",), Options.IGNORE_EMPTY_RESPONSE_DESCRIPTION
        )
        for name, header in response.headers.items():
            header_path = path + ("headers", name)
            if isinstance(header, Reference):
                ctx.follow(header.ref, header_path, ComponentKind.HEADERS)
            else:
                self.header(header, header_path)
        if response.schema_ is not None:
            check_schema(ctx, response.schema_, path + ("schema",))
        self.content(response.content, path + ("content",))
        self.links(response.links, path + ("links",))

    def header(self, header: Header, path: Path) -> None:
        if header.schema_ is not None:
            check_schema(self.ctx, header.schema_, path if self.is_v2 else path + ("schema",))
        self.content(header.content, path + ("content",))

    # --- Examples and links ---

    def examples(self, examples: dict[str, Any], path: Path) -> None:
        for name, example in examples.items():
            example_path = path + (name,)
            if isinstance(example, Reference):
                self.ctx.follow(example.ref, example_path, ComponentKind.EXAMPLES)
            else:
                check_example(self.ctx, example, example_path)

    def links(self, links: dict[str, Any], path: Path) -> None:
        for name, link in links.items():
            link_path = path + (name,)
            if isinstance(link, Reference):
                self.ctx.follow(link.ref, link_path, ComponentKind.LINKS)
            else:
                self.link(link, link_path)

    def link(self, link: Link, path: Path) -> None:
        ctx = self.ctx
        if link.operation_ref is not None and link.operation_id is not None:
            ctx.report(path, IssueKind.INVALID_LINK, "operationRef and operationId are mutually exclusive")
        elif link.operation_id is not None and link.operation_id not in self.known_operation_ids:
            ctx.report(
                path + ("operationId",),
                IssueKind.INVALID_LINK,
                f"operationId '{link.operation_id}' does not name an operation",
            )
        if link.server is not None:
            check_server(ctx, link.server, path + ("server",))

    # --- Components ---

    def components(self, document: AnySpecDocument) -> None:
        ctx = self.ctx
        style = document.components.pointer_style
        for kind, name, item in document.iter_components():
            path = component_path(kind, name, style)
            if style == PointerStyle.COMPONENTS and not COMPONENT_NAME.match(name):
                ctx.report(
                    path,
                    IssueKind.INVALID_COMPONENT_NAME,
                    f"'{name}' must match {COMPONENT_NAME.pattern}",
                )
            with ctx.owned_by(ComponentPointer(kind, name)):
                self.component(kind, item, path)
            if bare_reference(item) is not None:
                ctx.check_chain(pointer_for(kind, name, style), path, kind)

    def component(self, kind: ComponentKind, item: Any, path: Path) -> None:
        ctx = self.ctx
        if kind == ComponentKind.SCHEMAS:
            check_schema(ctx, item, path)
            return
        if kind == ComponentKind.PATH_ITEMS:
            self.path_item(item, path)
            return
        if isinstance(item, Reference):
            ctx.follow(item.ref, path, kind)
            return

        if kind == ComponentKind.RESPONSES:
            self.response(item, path)
        elif kind == ComponentKind.PARAMETERS:
            self.parameter(item, path)
        elif kind == ComponentKind.EXAMPLES:
            check_example(ctx, item, path)
        elif kind == ComponentKind.REQUEST_BODIES:
            self.request_body(item, path)
        elif kind == ComponentKind.HEADERS:
            self.header(item, path)
        elif kind == ComponentKind.LINKS:
            self.link(item, path)
        elif kind == ComponentKind.SECURITY_SCHEMES:
            check_security_scheme(ctx, item, path)
        elif kind == ComponentKind.CALLBACKS:
            self.callback(item, path)

    # --- Unused artifacts ---

    def unused(self, document: AnySpecDocument) -> None:
        ctx = self.ctx
        reachable = ctx.reachable()
        style = document.components.pointer_style
        for kind, name, _ in document.iter_components():
            if ComponentPointer(kind, name) in reachable or not ctx.enabled(UNUSED_FLAGS[kind]):
                continue
            ctx.report(component_path(kind, name, style), IssueKind.UNUSED_COMPONENT, f"{kind.value} '{name}' is unused")

        if ctx.enabled(Options.IGNORE_UNUSED_TAGS):
            for i, tag in enumerate(document.tags):
                if tag.name not in ctx.used_tags:
                    ctx.report(("tags", i), IssueKind.UNUSED_TAG, f"tag '{tag.name}' is unused")

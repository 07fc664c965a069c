"""Leaf checks shared by the engine and the dialect adapters.

Each ``check_*`` function inspects one kind of object, reports what it finds
on the :class:`~specval.validation.context.ValidationContext` and returns
nothing. None of them raise for document problems.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from specval.models import (
    ComponentKind,
    Example,
    ExternalDocumentation,
    Info,
    SecurityDefinition,
    SecurityRequirement,
    SecurityScheme,
    Server,
)
from specval.options import Options
from specval.parser.resolver import ComponentPointer
from specval.schema import (
    ArraySchema,
    CompositionSchema,
    ObjectSchema,
    PrimitiveSchema,
    ReferenceSchema,
    SchemaNode,
    child_nodes,
)
from specval.validation.context import Path, ValidationContext
from specval.validation.issues import IssueKind

SERVER_VARIABLE = re.compile(r"\{([a-zA-Z0-9.\-_]+)\}")


# --- Strings and URLs ---


def check_required_string(
    ctx: ValidationContext,
    value: Optional[str],
    path: Path,
    flag: Optional[Options] = None,
) -> None:
    """Report an empty required string, unless *flag* switches the check off."""
    if flag is not None and not ctx.enabled(flag):
        return
    if value is not None and not value.strip():
        ctx.report(path, IssueKind.EMPTY_REQUIRED_FIELD, "must not be empty")


def check_url(ctx: ValidationContext, url: Optional[str], path: Path) -> None:
    if url is None or not ctx.enabled(Options.IGNORE_INVALID_URLS):
        return
    if not url.startswith(("http://", "https://")):
        ctx.report(path, IssueKind.INVALID_URL, f"must be a valid URL, found '{url}'")


def check_email(ctx: ValidationContext, email: Optional[str], path: Path) -> None:
    if email is None or not ctx.enabled(Options.IGNORE_INVALID_URLS):
        return
    if "@" not in email:
        ctx.report(path, IssueKind.INVALID_URL, f"must be a valid email address, found '{email}'")


def check_external_docs(
    ctx: ValidationContext, docs: Optional[ExternalDocumentation], path: Path
) -> None:
    if docs is None:
        return
    if not docs.url.strip():
        check_required_string(
            ctx, docs.url, path + ("url",), Options.IGNORE_EMPTY_EXTERNAL_DOCUMENTATION_URL
        )
    else:
        check_url(ctx, docs.url, path + ("url",))


def check_info(ctx: ValidationContext, info: Info) -> None:
    path: Path = ("info",)
    check_required_string(ctx, info.title, path + ("title",), Options.IGNORE_EMPTY_INFO_TITLE)
    check_required_string(ctx, info.version, path + ("version",), Options.IGNORE_EMPTY_INFO_VERSION)
    if info.contact is not None:
        check_url(ctx, info.contact.url, path + ("contact", "url"))
        check_email(ctx, info.contact.email, path + ("contact", "email"))
    if info.license is not None:
        check_required_string(ctx, info.license.name, path + ("license", "name"))
        check_url(ctx, info.license.url, path + ("license", "url"))


# --- Servers ---


def check_servers(ctx: ValidationContext, servers: Sequence[Server], path: Path) -> None:
    """Check url templates against declared variables for each server."""
    for i, server in enumerate(servers):
        check_server(ctx, server, path + (i,))


def check_server(ctx: ValidationContext, server: Server, path: Path) -> None:
    check_required_string(ctx, server.url, path + ("url",))

    declared = set(server.variables)
    for name in SERVER_VARIABLE.findall(server.url):
        if name not in server.variables:
            ctx.report(
                path + ("url",),
                IssueKind.UNDECLARED_SERVER_VARIABLE,
                f"'{name}' is not defined in variables",
            )
        declared.discard(name)

    for name, variable in server.variables.items():
        var_path = path + ("variables", name)
        check_required_string(ctx, variable.default, var_path + ("default",))
        if variable.enum is not None and variable.default not in variable.enum:
            ctx.report(
                var_path + ("default",),
                IssueKind.INVALID_SERVER_VARIABLE,
                f"'{variable.default}' must be one of {list(variable.enum)}",
            )
        if name in declared and ctx.enabled(Options.IGNORE_UNUSED_SERVER_VARIABLES):
            ctx.report(var_path, IssueKind.UNUSED_SERVER_VARIABLE, "unused in url")


# --- Examples ---


def check_example(ctx: ValidationContext, example: Example, path: Path) -> None:
    if example.value is not None and example.external_value is not None:
        ctx.report(path, IssueKind.INVALID_EXAMPLE, "value and externalValue are mutually exclusive")
    check_url(ctx, example.external_value, path + ("externalValue",))


# --- Schemas ---


def check_schema(ctx: ValidationContext, node: SchemaNode, path: Path) -> None:
    """Check one schema tree, following nothing but reporting broken references."""
    if isinstance(node, ReferenceSchema):
        ctx.follow(node.ref, path, ComponentKind.SCHEMAS)
        return

    if isinstance(node, CompositionSchema):
        if not node.members and ctx.enabled(Options.IGNORE_EMPTY_COMPOSITIONS):
            ctx.report(
                path + (node.keyword.value,),
                IssueKind.EMPTY_COMPOSITION,
                f"{node.keyword.value} must have at least one member",
            )
    elif isinstance(node, ObjectSchema):
        _check_required_properties(ctx, node, path)

    if node.discriminator is not None:
        _check_discriminator(ctx, node, path)

    for relative, child in child_nodes(node):
        check_schema(ctx, child, path + relative)


def _check_required_properties(ctx: ValidationContext, node: ObjectSchema, path: Path) -> None:
    # Without declared properties, or with open additional properties, any
    # name may be present.
    if not node.properties or not ctx.enabled(Options.IGNORE_DANGLING_REQUIRED_PROPERTIES):
        return
    if node.additional_properties is not None and node.additional_properties is not False:
        return
    for i, name in enumerate(node.required):
        if name not in node.properties:
            ctx.report(
                path + ("required", i),
                IssueKind.DANGLING_REQUIRED_PROPERTY,
                f"'{name}' is required but not declared in properties",
            )


def _check_discriminator(ctx: ValidationContext, node: SchemaNode, path: Path) -> None:
    assert node.discriminator is not None
    disc_path = path + ("discriminator",)
    if isinstance(node, (PrimitiveSchema, ArraySchema)) and ctx.enabled(
        Options.IGNORE_MISPLACED_DISCRIMINATORS
    ):
        ctx.report(
            disc_path,
            IssueKind.MISPLACED_DISCRIMINATOR,
            f"discriminator is only meaningful on object or composition schemas, not {node.kind.value}",
        )

    schemas = ctx.document.components.schemas
    for value, target in node.discriminator.mapping.items():
        target_path = disc_path + ("mapping", value)
        if target.startswith("#") or "/" in target:
            ctx.follow(target, target_path, ComponentKind.SCHEMAS)
        elif target in schemas:
            ctx.use(ComponentPointer(ComponentKind.SCHEMAS, target))
        else:
            ctx.report(
                target_path,
                IssueKind.UNRESOLVED_REFERENCE,
                f"schema '{target}' not found",
            )


# --- Security ---


def check_security_requirements(
    ctx: ValidationContext,
    requirements: Optional[Sequence[SecurityRequirement]],
    path: Path,
) -> None:
    """Check that every named scheme is declared and every scope is offered by it."""
    if requirements is None:
        return
    schemes = ctx.document.security_schemes()
    check = ctx.enabled(Options.IGNORE_UNDECLARED_SECURITY_SCHEMES)
    for i, requirement in enumerate(requirements):
        for name, scopes in requirement.items():
            req_path = path + (i, name)
            if name not in schemes:
                if check:
                    ctx.report(
                        req_path,
                        IssueKind.UNDECLARED_SECURITY_SCHEME_USED,
                        f"security scheme '{name}' is not declared",
                    )
                continue
            ctx.use(ComponentPointer(ComponentKind.SECURITY_SCHEMES, name))

            scheme = schemes[name]
            if not isinstance(scheme, (SecurityScheme, SecurityDefinition)):
                scheme = ctx.resolve_quietly(scheme.ref, ComponentKind.SECURITY_SCHEMES)
            if scheme is None or scheme.type != "oauth2" or not check:
                continue
            offered = scheme.declared_scopes()
            for j, scope in enumerate(scopes):
                if scope not in offered:
                    ctx.report(
                        req_path + (j,),
                        IssueKind.UNDECLARED_SCOPE_USED,
                        f"scope '{scope}' is not declared by '{name}'",
                    )


def check_security_scheme(
    ctx: ValidationContext, scheme: SecurityScheme | SecurityDefinition, path: Path
) -> None:
    check_required_string(ctx, scheme.type, path + ("type",))
    if isinstance(scheme, SecurityDefinition):
        check_url(ctx, scheme.authorization_url, path + ("authorizationUrl",))
        check_url(ctx, scheme.token_url, path + ("tokenUrl",))
        return
    check_url(ctx, scheme.openid_connect_url, path + ("openIdConnectUrl",))
    for name, flow in scheme.flows.items():
        flow_path = path + ("flows", name)
        check_url(ctx, flow.authorization_url, flow_path + ("authorizationUrl",))
        check_url(ctx, flow.token_url, flow_path + ("tokenUrl",))
        check_url(ctx, flow.refresh_url, flow_path + ("refreshUrl",))

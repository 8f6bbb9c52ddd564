"""
Variable substitution service for replacing {{variable}} placeholders.

This service handles extraction and substitution of variable placeholders
in request templates (URL, headers, query params, cookies, body, auth).
Substitution is best effort: placeholders without a matching enabled
variable are left verbatim.
"""

import re
from typing import Iterable, List, Sequence, Tuple

from ..schemas.environment import EnvironmentVariable
from ..schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    BasicAuth,
    BearerAuth,
    FormUrlEncodedBody,
    MultipartBody,
    RawBody,
)


# Pattern to match {{variable_name}} placeholders; names may contain anything but braces
VARIABLE_PATTERN = re.compile(r'\{\{([^{}]+?)\}\}')


def extract_variables(template: str) -> List[str]:
    """
    Extract all variable names from a template string.

    Args:
        template: String containing {{variable}} placeholders

    Returns:
        List of variable names found in the template, in order of appearance

    Example:
        >>> extract_variables("Hello {{name}}, your id is {{user.id}}")
        ['name', 'user.id']
    """
    if not template:
        return []

    return VARIABLE_PATTERN.findall(template)


def resolve(text: str, variables: Sequence[EnvironmentVariable]) -> str:
    """
    Replace every ``{{key}}`` of each enabled variable with its value.

    Variables are applied in order, so when several enabled variables share
    a key the first one wins. Keys are matched literally and case-sensitively.

    Example:
        >>> resolve("{{A}}/{{B}}", [EnvironmentVariable(id="1", key="A", value="x"),
        ...                         EnvironmentVariable(id="2", key="B", value="y")])
        'x/y'
    """
    if not text:
        return text

    result = text
    for variable in variables:
        if not variable.enabled:
            continue
        pattern = re.compile(r"\{\{" + re.escape(variable.key) + r"\}\}")
        # A callable replacement keeps backslashes in values literal
        result = pattern.sub(lambda _match, value=variable.value: value, result)
    return result


def is_known_variable(name: str, available_keys: Iterable[str]) -> bool:
    """Return True if ``name`` is one of the available variable keys."""
    return name in set(available_keys)


def find_unknown_variables(text: str, variables: Sequence[EnvironmentVariable]) -> List[str]:
    """List placeholder names in ``text`` that no enabled variable defines."""
    keys = {v.key for v in variables if v.enabled}
    return [name for name in extract_variables(text) if not is_known_variable(name, keys)]


def substitute(template: str, variables: Sequence[EnvironmentVariable]) -> Tuple[str, List[str]]:
    """
    Resolve a template and report the placeholders that stayed unresolved.

    Returns:
        Tuple of (substituted string, list of unmatched variable names)
    """
    if not template:
        return template, []

    result = resolve(template, variables)
    return result, extract_variables(result) if "{{" in result else []


def resolve_dict(data: dict[str, str], variables: Sequence[EnvironmentVariable]) -> Tuple[dict[str, str], List[str]]:
    """
    Replace variable placeholders in all values of a dictionary.

    Returns:
        Tuple of (substituted dictionary, list of all unmatched variable names)
    """
    if not data:
        return data, []

    result = {}
    all_unmatched: List[str] = []

    for key, value in data.items():
        substituted_value, unmatched = substitute(value, variables)
        result[key] = substituted_value
        all_unmatched.extend(unmatched)

    return result, all_unmatched


def resolve_request(
    request: ApiRequest,
    variables: Sequence[EnvironmentVariable]
) -> Tuple[ApiRequest, List[str]]:
    """
    Apply variable substitution to all parts of a request.

    Args:
        request: The request definition to process
        variables: Variables of the active environment, in order

    Returns:
        Tuple of (processed request, list of warning messages)
    """
    warnings: List[str] = []

    def _warn(where: str, names: List[str]) -> None:
        warnings.extend(f"Undefined variable in {where}: {{{{{name}}}}}" for name in names)

    url, url_unmatched = substitute(request.url, variables)
    _warn("URL", url_unmatched)

    headers, headers_unmatched = resolve_dict(request.headers, variables)
    _warn("headers", headers_unmatched)

    query_params, params_unmatched = resolve_dict(request.query_params, variables)
    _warn("query params", params_unmatched)

    cookies = []
    for cookie in request.cookies:
        value, cookie_unmatched = substitute(cookie.value, variables)
        _warn("cookies", cookie_unmatched)
        cookies.append(cookie.model_copy(update={"value": value}))

    body = request.body
    if isinstance(body, RawBody):
        content, body_unmatched = substitute(body.content, variables)
        _warn("body", body_unmatched)
        body = body.model_copy(update={"content": content})
    elif isinstance(body, FormUrlEncodedBody):
        fields, body_unmatched = resolve_dict(body.fields, variables)
        _warn("body", body_unmatched)
        body = body.model_copy(update={"fields": fields})
    elif isinstance(body, MultipartBody):
        parts = []
        for part in body.fields:
            if part.kind == "text":
                value, body_unmatched = substitute(part.value, variables)
                _warn("body", body_unmatched)
                part = part.model_copy(update={"value": value})
            parts.append(part)
        body = body.model_copy(update={"fields": parts})

    auth = request.auth
    auth_unmatched: List[str] = []
    if isinstance(auth, BasicAuth):
        username, u_unmatched = substitute(auth.username, variables)
        password, p_unmatched = substitute(auth.password, variables)
        auth_unmatched = u_unmatched + p_unmatched
        auth = auth.model_copy(update={"username": username, "password": password})
    elif isinstance(auth, BearerAuth):
        token, auth_unmatched = substitute(auth.token, variables)
        auth = auth.model_copy(update={"token": token})
    elif isinstance(auth, ApiKeyAuth):
        key, k_unmatched = substitute(auth.key, variables)
        value, v_unmatched = substitute(auth.value, variables)
        auth_unmatched = k_unmatched + v_unmatched
        auth = auth.model_copy(update={"key": key, "value": value})
    _warn("auth", auth_unmatched)

    processed = request.model_copy(update={
        "url": url,
        "headers": headers,
        "query_params": query_params,
        "cookies": cookies,
        "body": body,
        "auth": auth,
    })

    return processed, warnings

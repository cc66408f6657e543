"""Request templates, per-request variable resolution and data file loading."""

import json
import random
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError, DataLoadError
from .models import HttpMethod

logger = structlog.get_logger()

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

# RFC 9110 token characters
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class RequestData(BaseModel):
    """Contents of a JSON/YAML request data file."""

    body: Any | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, str] = Field(default_factory=dict)
    path_variables: dict[str, str] = Field(default_factory=dict)
    # One set is picked at random for every request
    variables: list[dict[str, Any]] = Field(default_factory=list)


class ResolvedRequest(BaseModel):
    """A single concrete request built from a template."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, str] = Field(default_factory=dict)
    json_body: Any | None = None


class RequestTemplate(BaseModel):
    """Immutable description of what every attempt sends."""

    model_config = ConfigDict(frozen=True)

    url: str
    method: HttpMethod = HttpMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any | None = None
    params: dict[str, str] = Field(default_factory=dict)
    path_variables: dict[str, str] = Field(default_factory=dict)
    variables: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_data(
        cls,
        url: str,
        method: HttpMethod | str = HttpMethod.GET,
        headers: Mapping[str, str] | None = None,
        data: RequestData | None = None,
    ) -> "RequestTemplate":
        """Combine CLI-level settings with an optional data file.

        Data file headers are applied after *headers*, so they win on collision.
        """
        data = data or RequestData()
        return cls(
            url=url,
            method=parse_method(method),
            headers=merge_headers(headers or {}, data.headers),
            body=data.body,
            params=dict(data.params),
            path_variables=dict(data.path_variables),
            variables=[dict(v) for v in data.variables],
        )

    def choose_variables(self, rng: random.Random | None = None) -> dict[str, Any]:
        """Substitution mapping for one request: path variables plus one random set."""
        mapping: dict[str, Any] = dict(self.path_variables)
        if self.variables:
            chooser = rng or random
            mapping.update(chooser.choice(self.variables))
        return mapping

    def resolve(self, rng: random.Random | None = None) -> ResolvedRequest:
        mapping = self.choose_variables(rng)
        return ResolvedRequest(
            method=self.method,
            url=substitute(self.url, mapping),
            headers={k: str(substitute(v, mapping)) for k, v in self.headers.items()},
            params={k: str(substitute(v, mapping)) for k, v in self.params.items()},
            json_body=substitute(self.body, mapping) if self.method.sends_body else None,
        )


def parse_method(value: HttpMethod | str) -> HttpMethod:
    try:
        return HttpMethod(str(value).upper())
    except ValueError:
        raise ConfigurationError(f"Invalid HTTP method: {value}") from None


def invalid_header_names(headers: Iterable[str]) -> list[str]:
    return [name for name in headers if not _HEADER_NAME.match(name)]


def validate_header_names(headers: Iterable[str]) -> None:
    bad = invalid_header_names(headers)
    if bad:
        raise ConfigurationError(f"Invalid header name: {bad[0]!r}")


def merge_headers(*sources: Mapping[str, str]) -> dict[str, str]:
    """Merge header maps in order; later sources win, names compared case-insensitively."""
    merged: dict[str, tuple[str, str]] = {}
    for source in sources:
        for name, value in source.items():
            merged[name.strip().lower()] = (name.strip(), value)
    return dict(merged.values())


def substitute(value: Any, mapping: Mapping[str, Any]) -> Any:
    """Replace ``{name}`` placeholders in strings, recursing into lists and dicts.

    A string consisting of a single placeholder is replaced by the raw mapped
    value, so numbers and objects keep their JSON type.
    """
    if not mapping:
        return value
    if isinstance(value, str):
        whole = _PLACEHOLDER.fullmatch(value)
        if whole and whole.group(1) in mapping:
            return mapping[whole.group(1)]
        return _PLACEHOLDER.sub(
            lambda m: str(mapping[m.group(1)]) if m.group(1) in mapping else m.group(0),
            value,
        )
    if isinstance(value, list):
        return [substitute(item, mapping) for item in value]
    if isinstance(value, dict):
        return {k: substitute(v, mapping) for k, v in value.items()}
    return value


def parse_header_args(raw_headers: Iterable[str]) -> dict[str, str]:
    """Parse ``key:value`` strings; malformed entries are logged and skipped."""
    headers: dict[str, str] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            logger.warning("invalid_header_skipped", header=raw)
            continue
        headers = merge_headers(headers, {name.strip(): value.strip()})
    return headers


def load_request_data(path: str | Path) -> RequestData:
    """Load a JSON or YAML request data file (chosen by extension)."""
    path = Path(path)
    if not path.is_file():
        raise DataLoadError(path, "file not found")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DataLoadError(path, str(exc)) from exc

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            raw = yaml.safe_load(content)
        else:
            raw = json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DataLoadError(path, f"parse error: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise DataLoadError(path, "top level must be a mapping")

    try:
        data = RequestData.model_validate(raw)
    except ValidationError as exc:
        raise DataLoadError(path, f"invalid structure: {exc.error_count()} error(s)") from exc

    bad_headers = invalid_header_names(data.headers)
    if bad_headers:
        raise DataLoadError(path, f"invalid header name {bad_headers[0]!r}")

    logger.debug(
        "request_data_loaded",
        path=str(path),
        has_body=data.body is not None,
        headers=len(data.headers),
        params=len(data.params),
        path_variables=len(data.path_variables),
        variable_sets=len(data.variables),
    )
    return data

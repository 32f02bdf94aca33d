"""Edge modules: ready-made VCL features uploaded as snippets.

Each module is a list of Jinja2 templates, one per VCL subroutine. The
rendered snippets are named ``edgemodule_<module>_<type>`` so a module
can be found and removed again by its prefix.

Usage:
    snippets = render_edge_module(
        "countryblock", {"countries": ["RU", "KP"]}
    )
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from jinja2 import DictLoader, Environment, TemplateError

from fastlypurge.core.entities.purge_config import FastlyPurgeError
from fastlypurge.core.entities.service_version import VclSnippet

EDGE_MODULE_PREFIX = "edgemodule_"


class EdgeModuleError(FastlyPurgeError):
    """Raised for unknown modules or templates that fail to render."""

    pass


@dataclass(frozen=True)
class EdgeModuleVcl:
    """One snippet template of an edge module."""

    template: str
    type: str
    priority: int | None = None


@dataclass(frozen=True)
class EdgeModule:
    """A named edge feature and the snippets it installs."""

    id: str
    name: str
    description: str
    vcl: tuple[EdgeModuleVcl, ...] = field(default_factory=tuple)

    @property
    def snippet_prefix(self) -> str:
        return f"{EDGE_MODULE_PREFIX}{self.id}_"

    def snippet_name(self, vcl_type: str) -> str:
        return f"{self.snippet_prefix}{vcl_type}"


@dataclass(frozen=True)
class EdgeModuleStatus:
    """Whether a module is installed on a service version."""

    module: EdgeModule
    enabled: bool
    updated_at: str | None = None


TEMPLATES: dict[str, str] = {
    "cors_headers": """
{% if origin == "anyone" %}
set resp.http.Access-Control-Allow-Origin = "*";
{% elif cors_allowed_origins_regex %}
if (req.http.Origin ~ "{{ cors_allowed_origins_regex }}") {
  set resp.http.Access-Control-Allow-Origin = req.http.Origin;
}
{% endif %}
set resp.http.Access-Control-Allow-Methods = "{{ cors_allowed_methods|default("GET,HEAD,POST,OPTIONS", true) }}";
""",
    "countryblock": """
{% if countries %}
if ({% for country in countries %}client.geo.country_code == "{{ country|upper }}"{% if not loop.last %} || {% endif %}{% endfor %}) {
  error 971 "Forbidden";
}
{% endif %}
""",
    "countryblock_error": """
{% if countries %}
if (obj.status == 971) {
  set obj.status = 403;
  set obj.response = "Forbidden";
  synthetic {"Access from your country is not allowed."};
  return(deliver);
}
{% endif %}
""",
    "disable_cache_recv": """
{% for rule in rules if rule.pattern %}
if (req.url.path ~ "{{ rule.pattern }}") {
{% if rule.mode|default("browser") in ("browser", "both") %}
  set req.http.X-Fastly-Browser-No-Cache = "1";
{% endif %}
{% if rule.mode|default("browser") in ("fastly", "both") %}
  return(pass);
{% endif %}
}
{% endfor %}
""",
    "disable_cache_deliver": """
{% if rules|selectattr("pattern")|list %}
if (req.http.X-Fastly-Browser-No-Cache) {
  set resp.http.Cache-Control = "no-store, no-cache, must-revalidate, max-age=0";
}
{% endif %}
""",
    "increase_timeouts_long_jobs_recv": """
{% for rule in rules if rule.pattern %}
if (req.url.path ~ "{{ rule.pattern }}") {
  return(pass);
}
{% endfor %}
""",
    "increase_timeouts_long_jobs_pass": """
{% for rule in rules if rule.pattern %}
if (req.url.path ~ "{{ rule.pattern }}") {
  set bereq.first_byte_timeout = {{ rule.timeout|default(300)|int }}s;
  set bereq.between_bytes_timeout = {{ rule.timeout|default(300)|int }}s;
}
{% endfor %}
""",
    "force_cache_miss_on_hard_reload_for_admins_recv": """
{% if acl %}
if (client.ip ~ {{ acl }} && req.http.Cache-Control ~ "no-cache") {
  set req.hash_always_miss = true;
  set req.http.X-Fastly-Admin-Reload = "1";
}
{% endif %}
""",
    "force_cache_miss_on_hard_reload_for_admins_hash": """
{% if acl %}
if (req.http.X-Fastly-Admin-Reload) {
  set req.hash += "admin-reload";
}
{% endif %}
""",
}

_environment = Environment(
    loader=DictLoader(TEMPLATES),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)

MODULES: dict[str, EdgeModule] = {
    module.id: module
    for module in (
        EdgeModule(
            id="cors_headers",
            name="CORS headers",
            description="Set CORS headers",
            vcl=(EdgeModuleVcl("cors_headers", "deliver"),),
        ),
        EdgeModule(
            id="countryblock",
            name="Country block",
            description="Block requests from a set of countries.",
            vcl=(
                EdgeModuleVcl("countryblock", "recv"),
                EdgeModuleVcl("countryblock_error", "error"),
            ),
        ),
        EdgeModule(
            id="disable_cache",
            name="Disable caching",
            description=(
                "For selected requests, disable caching, either on Fastly, "
                "or in the browser, or both."
            ),
            vcl=(
                EdgeModuleVcl("disable_cache_recv", "recv"),
                EdgeModuleVcl("disable_cache_deliver", "deliver"),
            ),
        ),
        EdgeModule(
            id="force_cache_miss_on_hard_reload_for_admins",
            name="Hard Reload cache bypass for set of admin IPs",
            description=(
                "Force cache miss for users on allowlist when they hard "
                "reload a page. Only affects their own session."
            ),
            vcl=(
                EdgeModuleVcl("force_cache_miss_on_hard_reload_for_admins_recv", "recv"),
                EdgeModuleVcl("force_cache_miss_on_hard_reload_for_admins_hash", "hash"),
            ),
        ),
        EdgeModule(
            id="increase_timeouts_long_jobs",
            name="Increase timeouts for long running jobs",
            description=(
                "For selected requests, override the default backend timeout. "
                "These paths will no longer be cached."
            ),
            vcl=(
                EdgeModuleVcl("increase_timeouts_long_jobs_recv", "recv", priority=80),
                EdgeModuleVcl("increase_timeouts_long_jobs_pass", "pass"),
            ),
        ),
    )
}


def get_edge_module(name: str) -> EdgeModule:
    """Look up a module by id.

    Raises:
        EdgeModuleError: If no module has that id.
    """
    try:
        return MODULES[name]
    except KeyError:
        raise EdgeModuleError(f"Unknown edge module: {name}") from None


def render_edge_module(name: str, values: Mapping[str, Any]) -> list[VclSnippet]:
    """Render the snippets of a module.

    Templates that render to nothing (e.g. no rules configured) are
    skipped.

    Args:
        name: The module id.
        values: Template variables, e.g. ``{"countries": ["RU"]}``.

    Returns:
        The snippets to upload.

    Raises:
        EdgeModuleError: If the module is unknown or a template fails.
    """
    module = get_edge_module(name)
    context = {"rules": [], **values}

    snippets: list[VclSnippet] = []
    for vcl in module.vcl:
        try:
            content = _environment.get_template(vcl.template).render(context).strip()
        except (TemplateError, TypeError, ValueError) as e:
            raise EdgeModuleError(f"Unable to render {vcl.template}: {e}") from e

        if not content:
            continue

        snippet_args: dict[str, Any] = {
            "name": module.snippet_name(vcl.type),
            "type": vcl.type,
            "content": content,
        }
        if vcl.priority is not None:
            snippet_args["priority"] = vcl.priority
        snippets.append(VclSnippet(**snippet_args))

    return snippets


def is_edge_module_snippet(snippet_name: str, module: EdgeModule) -> bool:
    return snippet_name.startswith(module.snippet_prefix)


def edge_module_status(snippets: Iterable[Mapping[str, Any]]) -> list[EdgeModuleStatus]:
    """Report which modules are installed, given a version's snippets.

    Args:
        snippets: Snippet objects as returned by the snippet listing.

    Returns:
        One status per known module, in registry order.
    """
    snippets = list(snippets)
    statuses: list[EdgeModuleStatus] = []
    for module in MODULES.values():
        match = next(
            (s for s in snippets if is_edge_module_snippet(str(s.get("name", "")), module)),
            None,
        )
        statuses.append(
            EdgeModuleStatus(
                module=module,
                enabled=match is not None,
                updated_at=match.get("updated_at") if match else None,
            )
        )
    return statuses

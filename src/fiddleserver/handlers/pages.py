"""Renders the playground's index page for a sandbox version."""

import logging
import re
from typing import Any, Optional

from jinja2 import Environment, Template, TemplateSyntaxError
from jinja2.utils import htmlsafe_json_dumps

from ..cache import MemoCache
from ..results import HandlerResponse, HandlerResult, NotFound
from ..security import TokenProvider, anti_forgery_field
from ..storage import SandboxRegistry

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"

# Published bundles ship selmer templates: {{sandbox-version}}, {{opts|json|safe}}
TAG = re.compile(r"({{.*?}}|{%.*?%})", re.DOTALL)
TAG_TOKEN = re.compile(
    r"""(?P<string>"[^"]*"|'[^']*')"""
    r"""|\|(?P<filter>\w+):(?P<arg>"[^"]*"|'[^']*'|[\w.]+)"""
    r"""|(?P<name>[A-Za-z_]\w*(?:-[A-Za-z_]\w*)+)"""
)


def _translate_token(match: re.Match) -> str:
    if match.group("string"):
        return match.group("string")
    if match.group("filter"):
        return f"|{match.group('filter')}({match.group('arg')})"
    return match.group("name").replace("-", "_")


def selmer_to_jinja(source: str) -> str:
    """Rewrite selmer tag syntax into its Jinja2 equivalent.

    Hyphenated names become underscored and ``|filter:arg`` becomes
    ``|filter(arg)``. Text outside of tags is left alone.
    """
    return TAG.sub(lambda tag: TAG_TOKEN.sub(_translate_token, tag.group(0)), source)


def json_filter(value: Any) -> str:
    """selmer's ``json`` filter; output is safe to embed in a script block."""
    return htmlsafe_json_dumps(value)


def create_environment() -> Environment:
    environment = Environment(autoescape=True)
    environment.filters["json"] = json_filter
    return environment


class _MissingIndex(Exception):
    pass


class TemplateRenderer:
    """Builds the HTML document from a version's ``index.html`` template."""

    def __init__(self, registry: SandboxRegistry, token_provider: TokenProvider):
        self.registry = registry
        self.token_provider = token_provider
        self.environment = create_environment()
        self._templates: MemoCache[Template] = MemoCache()

    @property
    def latest(self) -> Optional[str]:
        return self.registry.latest

    def _template(self, version: str) -> Optional[Template]:
        reader = self.registry.reader(version)
        if reader is None:
            return None

        def compile_index() -> Template:
            index = reader.get(INDEX_FILE)
            if index is None:
                raise _MissingIndex(version)
            return self.environment.from_string(selmer_to_jinja(index.body.decode("utf-8")))

        # Absence is not memoized here, the reader decides what it caches
        try:
            return self._templates.get_or_compute(version, compile_index)
        except _MissingIndex:
            return None

    def build_context(
        self, version: str, gist_id: Optional[str], token: str
    ) -> dict[str, Any]:
        """Template variables for a render."""
        opts: dict[str, Any] = {"latest": self.latest}
        if gist_id:
            opts["gist_id"] = gist_id

        return {
            "sandbox_version": version,
            "opts": opts,
            "anti_forgery": anti_forgery_field(token),
            "anti_forgery_token": token,
        }

    def render(
        self,
        request: Any,
        version: Optional[str] = None,
        gist_id: Optional[str] = None,
    ) -> HandlerResult:
        """Render the page for ``version``, or the latest one when omitted.

        Args:
            request: The inbound request, handed to the token provider
            version: Explicit sandbox version from the path
            gist_id: Gist to pre-load in the page

        Returns:
            HandlerResponse with the HTML document, or NotFound
        """
        version = version or self.latest
        if version is None:
            return NotFound("No sandbox versions published")
        if version not in self.registry:
            return NotFound(f"Unknown sandbox version: {version}")

        try:
            template = self._template(version)
        except (TemplateSyntaxError, UnicodeDecodeError) as e:
            logger.error(f"Unusable {INDEX_FILE} in sandbox {version}: {e}")
            raise
        if template is None:
            return NotFound(f"No {INDEX_FILE} in sandbox {version}")

        token = self.token_provider.current_token(request)
        body = template.render(self.build_context(version, gist_id, token))
        return HandlerResponse(body=body, media_type="text/html")

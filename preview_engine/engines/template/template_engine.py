"""
Template renderer: preprocess, translate, compile and render with Jinja2.

render(template, context, functions):

1. build a fresh HelperRegistry for *functions* (per call, never global);
2. rewrite the ``{{#func:name(args)}}`` shorthand (preprocessor);
3. translate the Handlebars-style dialect to Jinja2 source (dialect);
4. compile (LRU-cached by source hash) and render against a deep copy of
   *context*, so helpers never mutate the caller's data.

Rendering is atomic: any failure raises TemplateError("Template Error: ...")
and no partial output is returned. An exceeded execution budget propagates
as ExecutionBudgetExceeded.

Output of every ``{{ }}`` goes through ``display_finalize``; with
``autoescape=True`` (HTML/XML previews) it is then HTML-escaped, except for
``{{{ raw }}}``.
"""

import copy
import hashlib
import logging
import threading
from collections import OrderedDict
from collections.abc import Iterable, Mapping
from typing import Any

from jinja2 import Environment, StrictUndefined, Template
from jinja2 import TemplateError as Jinja2TemplateError

from preview_engine.core.budget import ExecutionBudgetExceeded, execution_budget
from preview_engine.core.config import settings
from preview_engine.engines.template.dialect import translate
from preview_engine.engines.template.errors import TemplateError
from preview_engine.engines.template.filters import TEMPLATE_GLOBALS, display_finalize
from preview_engine.engines.template.helpers import HelperRegistry
from preview_engine.engines.template.preprocessor import preprocess_template
from preview_engine.models import FunctionDefinition

_log = logging.getLogger(__name__)

_ENVS: dict[bool, Environment] = {}
_env_lock = threading.Lock()

_template_cache: OrderedDict[str, Template] = OrderedDict()
_cache_lock = threading.Lock()


def _get_env(autoescape: bool) -> Environment:
    """Return the shared Jinja2 Environment (one per autoescape setting)."""
    with _env_lock:
        env = _ENVS.get(autoescape)
        if env is None:
            env = Environment(
                autoescape=autoescape,
                finalize=display_finalize,
                undefined=StrictUndefined,
                keep_trailing_newline=True,
            )
            env.globals.update(TEMPLATE_GLOBALS)
            _ENVS[autoescape] = env
        return env


def _compile_cached(env: Environment, source: str) -> Template:
    """Return a compiled ``Template`` from cache or compile & cache it."""
    key = f"{int(bool(env.autoescape))}:" + hashlib.md5(
        source.encode(), usedforsecurity=False
    ).hexdigest()
    with _cache_lock:
        tpl = _template_cache.get(key)
        if tpl is not None:
            _template_cache.move_to_end(key)
            return tpl
    tpl = env.from_string(source)
    with _cache_lock:
        _template_cache[key] = tpl
        while len(_template_cache) > settings.TEMPLATE_CACHE_MAX_SIZE:
            _template_cache.popitem(last=False)
    return tpl


def clear_template_cache() -> None:
    with _cache_lock:
        _template_cache.clear()


class TemplateRenderer:
    """Renders dialect templates against a context with user functions as helpers."""

    def to_jinja(
        self,
        template: str,
        functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
    ) -> str:
        """Jinja2 source a template translates to (debugging aid)."""
        registry = HelperRegistry(functions)
        return translate(preprocess_template(template), registry.names())

    def render(
        self,
        template: str,
        context: Mapping[str, Any] | None,
        functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
        *,
        autoescape: bool = False,
    ) -> str:
        """Render *template* with *context*; raise TemplateError on any failure."""
        try:
            registry = HelperRegistry(functions)
            source = translate(preprocess_template(template), registry.names())
            tpl = _compile_cached(_get_env(autoescape), source)
            with execution_budget(settings.TEMPLATE_RENDER_TIMEOUT, what="Template render"):
                return tpl.render(_s0=copy.deepcopy(dict(context or {})), _h=registry)
        except ExecutionBudgetExceeded:
            _log.warning("Template render exceeded its execution budget")
            raise
        except TemplateError as e:
            raise TemplateError(f"Template Error: {e}") from e
        except Jinja2TemplateError as e:
            _log.debug("Jinja2 failed on translated template: %s", e)
            raise TemplateError(f"Template Error: {e}") from e
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            _log.debug("Template render failed: %s", e, exc_info=True)
            raise TemplateError(f"Template Error: {e}") from e


def render_template(
    template: str,
    context: Mapping[str, Any] | None,
    functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
    *,
    autoescape: bool = False,
) -> str:
    """Shortcut for ``TemplateRenderer().render(...)``."""
    return TemplateRenderer().render(template, context, functions, autoescape=autoescape)

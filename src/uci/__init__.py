"""
uci - context and error-propagation core of a configuration-data library.

Usage example
-------------
    import uci

    ctx = uci.create()
    if uci.set_confdir(ctx, "/srv/config") != uci.ErrorCode.OK:
        uci.report_last_error(ctx, "myapp")
    uci.free(ctx)
"""

from uci.api import (
    add_history_path,
    add_package,
    cleanup,
    create,
    free,
    list_configs,
    lookup_package,
    set_confdir,
    set_savedir,
    set_strict,
    unload,
)
from uci.config import ContextConfig, LoggingConfig, load_config
from uci.context import Context, ContextFlag, DirValue
from uci.errors import ErrorCode, ParseError, UciError, format_last_error, report_last_error
from uci.parse import ParseContext, parse_scope
from uci.version import __version__

__all__ = [
    "Context",
    "ContextConfig",
    "ContextFlag",
    "DirValue",
    "ErrorCode",
    "LoggingConfig",
    "ParseContext",
    "ParseError",
    "UciError",
    "__version__",
    "add_history_path",
    "add_package",
    "cleanup",
    "create",
    "format_last_error",
    "free",
    "list_configs",
    "load_config",
    "lookup_package",
    "parse_scope",
    "report_last_error",
    "set_confdir",
    "set_savedir",
    "set_strict",
    "unload",
]

"""Feature switches.

Features are resolved once, before any columnation happens, from the
environment and then from the command line. The core only ever sees the
resulting plain values.

COLUMNATOR_FEATURES holds a colon-separated list of the features to turn on,
e.g. `align_semicolons:trace_tree`. Anything not listed is off.
COLUMNATOR_TAB_WIDTH sets how many columns a leading tab counts for when
comparing indentation.
"""

import dataclasses
import logging
import sys
import typing

from .errors import ConfigError

FEATURES_VARIABLE = "COLUMNATOR_FEATURES"
TAB_WIDTH_VARIABLE = "COLUMNATOR_TAB_WIDTH"

TRACE_LOGGERS = {
    "trace_parse": "columnator.parse",
    "trace_tree": "columnator.tree",
}


@dataclasses.dataclass(frozen=True)
class Features:
    align_semicolons: bool = False
    trace_parse: bool = False
    trace_tree: bool = False
    tab_width: int = 2

    @classmethod
    def names(cls) -> list[str]:
        return [field.name for field in dataclasses.fields(cls) if field.type in (bool, "bool")]

    @classmethod
    def from_environment(cls, environ: typing.Mapping[str, str]) -> "Features":
        enabled: dict[str, bool] = {}
        value = environ.get(FEATURES_VARIABLE)
        if value:
            known = cls.names()
            for name in value.split(":"):
                name = name.strip()
                if name == "":
                    continue
                if name not in known:
                    raise ConfigError(
                        f"Unknown feature {name!r} in {FEATURES_VARIABLE}; "
                        f"expected one of {', '.join(known)}"
                    )
                enabled[name] = True

        tab_width = 2
        value = environ.get(TAB_WIDTH_VARIABLE)
        if value:
            try:
                tab_width = int(value)
            except ValueError:
                raise ConfigError(f"{TAB_WIDTH_VARIABLE} must be a whole number, not {value!r}")
            if tab_width < 1:
                raise ConfigError(f"{TAB_WIDTH_VARIABLE} must be at least 1")

        return cls(tab_width=tab_width, **enabled)

    def enable(self, *names: str) -> "Features":
        known = self.names()
        for name in names:
            if name not in known:
                raise ConfigError(f"Unknown feature {name!r}")
        return dataclasses.replace(self, **{name: True for name in names})


_trace_handlers: dict[str, logging.Handler] = {}


def configure_tracing(features: Features, stream: typing.TextIO | None = None):
    """Send the enabled traces to `stream` (stderr by default).

    Tracing is a side channel: it never changes what gets columnated. Calling
    this again replaces the handlers an earlier call installed.
    """
    if stream is None:
        stream = sys.stderr

    for feature, name in TRACE_LOGGERS.items():
        logger = logging.getLogger(name)
        old = _trace_handlers.pop(name, None)
        if old is not None:
            logger.removeHandler(old)
            logger.setLevel(logging.NOTSET)
            logger.propagate = True

        if not getattr(features, feature):
            continue

        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        _trace_handlers[name] = handler

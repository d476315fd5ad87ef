import os
from dataclasses import dataclass, replace

from protoc_gen_interceptors.src.protoc_gen_interceptors.inputs.code_generator_request import resolve_out_dir

ENV_PREFIX = "PROTOC_GEN_INTERCEPTORS_"
FALSE_VALUES = ("0", "false", "no", "off")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in FALSE_VALUES


@dataclass(frozen=True)
class PluginOptions:
    """Settings for one plugin run: protoc parameter plus environment."""
    out_dir: str = ""
    log_level: str = "INFO"
    gofmt: bool = True
    fail_fast: bool = True

    @classmethod
    def from_env(cls) -> "PluginOptions":
        return cls(
            log_level=os.environ.get(ENV_PREFIX + "LOG_LEVEL", "INFO").strip().upper() or "INFO",
            gofmt=_env_flag("GOFMT", True),
            fail_fast=_env_flag("FAIL_FAST", True),
        )

    def with_parameter(self, parameter: str) -> "PluginOptions":
        """Adds what the protoc parameter string carries (only the output directory)."""
        return replace(self, out_dir=resolve_out_dir(parameter))

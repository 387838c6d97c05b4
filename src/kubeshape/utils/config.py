"""Controller settings loaded from the environment."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

ENV_PREFIX = "KUBESHAPE_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Process-wide controller settings."""

    kubeconfig_path: str | None = None
    controller_namespace: str = "kubeshape-system"
    identity_config_name: str = "gcp-identity-config"
    ingress_namespace: str = "istio-gateways"
    monitoring_namespace: str = "monitoring"
    priority_class_prefix: str = "kubeshape"
    cycle_timeout_seconds: float = 30.0
    parallel_steps: bool = True

    @property
    def platform_namespaces(self) -> tuple[str, ...]:
        """Namespaces whose pods may always reach an application."""
        return tuple(dict.fromkeys(ns for ns in (self.ingress_namespace, self.monitoring_namespace) if ns))


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {raw!r}")
    return value


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def load_config(env: Mapping[str, str] | None = None) -> Settings:
    """
    Load settings from ``KUBESHAPE_*`` environment variables.

    Args:
        env: Mapping to read from, defaults to ``os.environ``

    Raises:
        ValueError: if a numeric or boolean variable cannot be parsed
    """
    env = os.environ if env is None else env
    defaults = Settings()

    return Settings(
        kubeconfig_path=env.get(ENV_PREFIX + "KUBECONFIG_PATH") or None,
        controller_namespace=env.get(ENV_PREFIX + "CONTROLLER_NAMESPACE") or defaults.controller_namespace,
        identity_config_name=env.get(ENV_PREFIX + "IDENTITY_CONFIG_NAME") or defaults.identity_config_name,
        ingress_namespace=env.get(ENV_PREFIX + "INGRESS_NAMESPACE") or defaults.ingress_namespace,
        monitoring_namespace=env.get(ENV_PREFIX + "MONITORING_NAMESPACE") or defaults.monitoring_namespace,
        priority_class_prefix=env.get(ENV_PREFIX + "PRIORITY_CLASS_PREFIX") or defaults.priority_class_prefix,
        cycle_timeout_seconds=_env_float(env, "CYCLE_TIMEOUT_SECONDS", defaults.cycle_timeout_seconds),
        parallel_steps=_env_bool(env, "PARALLEL_STEPS", defaults.parallel_steps),
    )

"""
Config Manager

Loads the runtime configuration from YAML.
User values are merged over the packaged factory defaults, section by section.
"""

import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from sprite_animation.utils.logger import get_logger, configure_logger, LogLevel, LogCategory

log = get_logger().for_category(LogCategory.CONFIG)

FACTORY_DEFAULTS_PATH = Path(__file__).parent.parent / "config" / "factory_defaults.yaml"


@dataclass(frozen=True)
class LoggingConfig:
    level: LogLevel = LogLevel.INFO
    colors: bool = True


@dataclass(frozen=True)
class LoaderConfig:
    timeout_s: float = 10.0
    retina: bool = False


@dataclass(frozen=True)
class ResolverConfig:
    max_attempts: int = 100_000


@dataclass(frozen=True)
class PlaybackConfig:
    ignore_atlas_scale: bool = True


@dataclass(frozen=True)
class SpriteAnimationConfig:
    logging: LoggingConfig = LoggingConfig()
    loader: LoaderConfig = LoaderConfig()
    resolver: ResolverConfig = ResolverConfig()
    playback: PlaybackConfig = PlaybackConfig()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpriteAnimationConfig":
        """
        Build a config from merged YAML data.

        Raises:
            ValueError: unknown log level or out-of-range value
        """
        logging = data.get("logging") or {}
        loader = data.get("loader") or {}
        resolver = data.get("resolver") or {}
        playback = data.get("playback") or {}

        level_name = str(logging.get("level", "INFO")).upper()
        try:
            level = LogLevel[level_name]
        except KeyError:
            raise ValueError(f"Unknown log level: {level_name}") from None

        timeout_s = float(loader.get("timeout_s", 10.0))
        if timeout_s <= 0:
            raise ValueError(f"loader.timeout_s must be positive, got {timeout_s}")

        max_attempts = int(resolver.get("max_attempts", 100_000))
        if max_attempts < 1:
            raise ValueError(f"resolver.max_attempts must be at least 1, got {max_attempts}")

        return cls(
            logging=LoggingConfig(level=level, colors=bool(logging.get("colors", True))),
            loader=LoaderConfig(timeout_s=timeout_s, retina=bool(loader.get("retina", False))),
            resolver=ResolverConfig(max_attempts=max_attempts),
            playback=PlaybackConfig(ignore_atlas_scale=bool(playback.get("ignore_atlas_scale", True))),
        )


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: top level must be a mapping, got {type(data).__name__}")
    return data


class ConfigManager:
    """
    Runtime configuration with factory defaults fallback

    The user file may be monolithic or use an 'include:' list of sibling
    YAML files that are merged in order.

    Example:
        config_manager = ConfigManager("sprites.yaml")
        config = config_manager.load()
        config_manager.apply_logging()

        engine = PlaybackEngine.from_config(config, store, loader, renderer, bus)
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        defaults_path: Union[str, Path] = FACTORY_DEFAULTS_PATH
    ):
        """
        Args:
            config_path: User YAML file (None = defaults only)
            defaults_path: Factory defaults shipped with the package
        """
        self.config_path = Path(config_path) if config_path is not None else None
        self.defaults_path = Path(defaults_path)
        self.data: Dict[str, Any] = {}
        self.config = SpriteAnimationConfig()

    def load(self) -> SpriteAnimationConfig:
        """
        Load defaults, merge the user file over them and build the config.

        A missing or invalid user file is logged and ignored.
        """
        defaults = _read_yaml(self.defaults_path)

        user: Dict[str, Any] = {}
        if self.config_path is not None:
            try:
                user = self._load_user_config(self.config_path)
            except Exception as ex:
                log.error("Failed to load config", path=str(self.config_path), error=str(ex), error_type=type(ex).__name__)
                log.warn("Falling back to factory defaults")

        try:
            self.data = _merge(defaults, user)
            self.config = SpriteAnimationConfig.from_dict(self.data)
        except (AttributeError, TypeError, ValueError) as ex:
            log.error("Invalid config values", error=str(ex))
            log.warn("Falling back to factory defaults")
            self.data = defaults
            self.config = SpriteAnimationConfig.from_dict(defaults)

        log.info(
            "Config loaded",
            source=str(self.config_path) if self.config_path else "factory defaults",
            log_level=self.config.logging.level.name,
            retina=self.config.loader.retina
        )
        return self.config

    def _load_user_config(self, path: Path) -> Dict[str, Any]:
        main_config = _read_yaml(path)
        if "include" not in main_config:
            return main_config

        log.info("Using include-based configuration")
        return self._load_with_includes(main_config["include"], path.parent)

    def _load_with_includes(self, include_list: List[str], config_dir: Path) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}

        for filename in include_list:
            file_data = _read_yaml(config_dir / filename)
            merged = _merge(merged, file_data)
            log.debug(f"Loaded {filename}", keys=str(list(file_data.keys())))

        return merged

    def apply_logging(self) -> None:
        """Push the logging section into the shared logger"""
        configure_logger(
            min_level=self.config.logging.level,
            use_colors=self.config.logging.colors
        )

    @property
    def loader(self) -> LoaderConfig:
        return self.config.loader

    @property
    def resolver(self) -> ResolverConfig:
        return self.config.resolver

    @property
    def playback(self) -> PlaybackConfig:
        return self.config.playback

import os.path as osp
from dataclasses import dataclass, fields
from typing import Tuple

import yaml

from volmask.utils.logger import logger


here = osp.dirname(osp.abspath(__file__))


def update_dict(target_dict, new_dict, validate_item=None):
    for key, value in new_dict.items():
        if validate_item:
            validate_item(key, value)
        if key not in target_dict:
            logger.warning("Skipping unexpected key in config: {}".format(key))
            continue
        if isinstance(target_dict[key], dict) and isinstance(value, dict):
            update_dict(target_dict[key], value, validate_item=validate_item)
        else:
            target_dict[key] = value


def get_default_config():
    config_file = osp.join(here, "masking.yaml")
    with open(config_file) as f:
        config = yaml.safe_load(f)
    return config


def validate_config_item(key, value):
    if key in ("brush_size", "brush_size_min", "brush_size_max") and int(value) < 1:
        raise ValueError(
            "Unexpected value for config key '{}': {}".format(key, value)
        )
    if key in ("zoom_min", "zoom_max", "zoom_step", "wheel_zoom_step") and float(value) <= 0:
        raise ValueError(
            "Unexpected value for config key '{}': {}".format(key, value)
        )
    if key == "overlay_alpha" and not 0 <= float(value) <= 1:
        raise ValueError(
            "Unexpected value for config key 'overlay_alpha': {}".format(value)
        )
    if key == "overlay_color" and (
        len(value) != 3 or any(not 0 <= int(c) <= 255 for c in value)
    ):
        raise ValueError(
            "Unexpected value for config key 'overlay_color': {}".format(value)
        )


def get_config(config_file_or_yaml=None, config_from_args=None):
    # 1. default config
    config = get_default_config()

    # 2. specified as file or yaml
    if config_file_or_yaml is not None:
        config_from_yaml = yaml.safe_load(config_file_or_yaml)
        if not isinstance(config_from_yaml, dict):
            with open(config_from_yaml) as f:
                logger.info(
                    "Loading config file from: {}".format(config_from_yaml)
                )
                config_from_yaml = yaml.safe_load(f)
        update_dict(
            config, config_from_yaml, validate_item=validate_config_item
        )

    # 3. explicit overrides
    if config_from_args is not None:
        update_dict(
            config, config_from_args, validate_item=validate_config_item
        )

    return config


@dataclass(frozen=True)
class MaskingConfig:
    brush_size: int = 8
    brush_size_min: int = 1
    brush_size_max: int = 40
    zoom_min: float = 0.25
    zoom_max: float = 4.0
    zoom_step: float = 0.25
    wheel_zoom_step: float = 0.1
    brightness_min: int = -100
    brightness_max: int = 100
    contrast_min: int = -100
    contrast_max: int = 100
    overlay_alpha: float = 0.5
    overlay_color: Tuple[int, int, int] = (255, 0, 0)
    window_samples: int = 50000

    @classmethod
    def from_dict(cls, config) -> "MaskingConfig":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in config.items() if k in known}
        if "overlay_color" in values:
            values["overlay_color"] = tuple(int(c) for c in values["overlay_color"])
        return cls(**values)


def load_masking_config(config_file_or_yaml=None, config_from_args=None) -> MaskingConfig:
    return MaskingConfig.from_dict(get_config(config_file_or_yaml, config_from_args))

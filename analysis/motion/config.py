# analysis/motion/config.py
"""Load a :class:`MotionConfig` from a plain Python settings module.

The module is named explicitly or through ``MOVEDETECT_CONFIG_MODULE``.
Upper-case attributes whose lower-cased name matches a config field are
used, e.g.::

    # my_settings.py
    PSNR_THRESHOLD = 28.0
    KEY_FRAME_FREQUENCY = 1
    NUMBER_OF_CONTROL_FRAMES = 10
"""

from __future__ import annotations

import logging
import os
from importlib import import_module
from typing import Optional

from .model import MotionConfig, motion_config_from_mapping

_LOG = logging.getLogger(__name__)

ENV_VAR = "MOVEDETECT_CONFIG_MODULE"


def load_motion_config(module_name: Optional[str] = None) -> MotionConfig:
    """Return the configured :class:`MotionConfig`, or defaults.

    Raises
    ------
    ImportError
        If a module was named but cannot be imported.
    """
    name = module_name or os.environ.get(ENV_VAR)
    if not name:
        return MotionConfig()

    try:
        mod = import_module(name)
    except ImportError as exc:
        raise ImportError(
            f"Could not import motion config module {name!r}. "
            f"Check {ENV_VAR} or the module name passed in."
        ) from exc

    settings = {k: getattr(mod, k) for k in dir(mod) if k.isupper() and not k.startswith("_")}
    cfg = motion_config_from_mapping(settings)
    _LOG.info("Loaded motion config from %s: %s", name, cfg)
    return cfg

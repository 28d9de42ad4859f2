from .loader import (
    MatchPolicy,
    StubloomConfig,
    config_from_dict,
    load_config_from_path,
)

__all__ = ["MatchPolicy", "StubloomConfig", "config_from_dict", "load_config_from_path"]

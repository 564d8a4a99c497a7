"""sbconf - tag-aware viewer and editor for sing-box configuration directories."""

__version__ = "0.1.0"

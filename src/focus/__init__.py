"""Focus - GTD task manager."""

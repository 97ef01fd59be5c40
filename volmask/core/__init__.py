"""GUI-free volume annotation core."""

"""Core tree pipeline: normalize, repair, lay out, sequence."""

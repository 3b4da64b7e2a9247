"""Animation playback: timeline, driver, and remote stream adapter."""

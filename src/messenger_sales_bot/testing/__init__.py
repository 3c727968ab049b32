"""Manual testing tools for the signal core."""

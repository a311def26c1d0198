"""Term model, arithmetic and the text reader."""

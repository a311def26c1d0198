"""Host runtime: engine, builtins, procedure table and loop interpreter."""

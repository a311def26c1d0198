"""Loop specification parsing, artifact generation and procedure synthesis."""

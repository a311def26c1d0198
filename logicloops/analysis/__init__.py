"""Static analysis of loops within their enclosing clauses."""

"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks every bound model uses (DB wiring,
settings, logging, error mapping). Keep model-specific schemas and wiring in
the corresponding feature package (e.g. `flights/`).
"""

"""Cross-cutting application concerns: config, logging, errors, CORS, extensions."""

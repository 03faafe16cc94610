"""Host surface: query orchestration, HTTP app and CLI."""

"""DuckDB persistence: schema, users, picks, notifications, trivia, procedures."""

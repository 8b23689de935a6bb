"""Pure helpers, including the line topology engine."""

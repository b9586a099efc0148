"""Service layer composing scanners, the catalog store and the artwork pipeline."""

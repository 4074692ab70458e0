"""Pure domain layer: money codec, categories, clock and DTOs. Zero I/O."""

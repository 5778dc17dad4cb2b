"""Host-side adapters that turn declaration payloads into analysis units."""

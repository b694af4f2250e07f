"""Lambda entry point that renders the current key ring."""

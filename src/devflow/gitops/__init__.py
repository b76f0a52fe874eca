"""Git working-copy operations: status dashboard and release tagging."""

"""Build-error remediation loop driven by an agent CLI."""

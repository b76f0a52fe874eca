"""Cloud vault secret import."""

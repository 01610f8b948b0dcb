"""Foundation layer: configuration and error taxonomy."""

"""pagepulse command-line interface."""

"""HTTP routes and dependency wiring."""

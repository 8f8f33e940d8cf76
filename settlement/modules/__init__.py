"""Settlement feature modules."""

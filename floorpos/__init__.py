"""Restaurant floor, order and billing service."""

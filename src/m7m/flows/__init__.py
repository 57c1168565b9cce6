"""Flow definitions, their interpreter and the triggers that run them."""

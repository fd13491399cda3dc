"""Pure record transformation and delivery decisions."""

"""Floor-plan and equipment photo annotation engine."""

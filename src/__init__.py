"""Recipe Costing application package."""

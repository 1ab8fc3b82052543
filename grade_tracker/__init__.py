"""Grade tracking calculator: weighted averages, degree classification and target grades."""

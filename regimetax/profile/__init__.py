"""Input side: the UserTaxProfile contract and the advisory validator."""

"""GitHub data fetching, activity analytics and dashboard aggregation."""

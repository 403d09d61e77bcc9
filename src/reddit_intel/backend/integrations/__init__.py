"""HTTP integrations: upstream Reddit API and the vector document store."""

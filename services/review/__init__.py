"""Review scheduling, rating taxonomy and daily stats."""

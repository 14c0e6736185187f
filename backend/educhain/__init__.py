"""EduChain scholarship platform backend."""

"""LingoMate: spaced repetition scheduling for vocabulary reviews."""

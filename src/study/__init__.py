"""Spaced-repetition study components: scheduler, priority ordering, drills."""

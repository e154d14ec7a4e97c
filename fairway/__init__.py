"""Fairway — group golf outing planner."""

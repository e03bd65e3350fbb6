"""HEAL-EYE HTTP surface."""

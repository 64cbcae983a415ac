"""Markov model, snapshot store and chat orchestration."""

"""Markov chatter service for the Discord bot."""

"""Collaborators around the engines: wallet, OTP, staggering, notifications."""

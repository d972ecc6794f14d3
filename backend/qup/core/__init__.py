"""Domain rules shared by services: permissions, validation, voting, files, tokens and events."""

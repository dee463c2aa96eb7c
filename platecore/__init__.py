"""Core logic for the pressure plate console: models, local storage, directory and change logs."""

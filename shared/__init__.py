"""Models, constants, configuration, logging and storage shared by the player."""

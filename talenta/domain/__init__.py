"""Domain layer: entities, ordering and playback logic, and collaborator interfaces."""

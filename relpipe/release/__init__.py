"""Release pipeline: resolution, collaborators and the release step graph."""

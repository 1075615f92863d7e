"""
vocalnotes service package.

Design intent:
- Turn short voice notes into an incrementally enriched property listing.
- Keep collaborator adapters (transcription/extraction) out of the merge core.
- Push every intermediate state to observers as it happens.
"""

"""Territory engine: trails, collisions, captures, scoring and lifecycle.

The modules here hold the game mechanics. HTTP routes and socket handlers
reach them through ``GameService`` so transport concerns stay out of the
geometry and rules.
"""

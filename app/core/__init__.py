"""Report engine core: actor, typed outcomes, boundary exceptions."""

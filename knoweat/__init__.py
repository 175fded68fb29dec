"""KnowEat: menu photo analysis and dietary-restriction matching."""

"""Infrastructure: manifest I/O, range algebra, project loading, graph engine."""

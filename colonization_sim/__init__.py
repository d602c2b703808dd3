"""colonization_sim: radial colonization and local saturation in continuous space.

An individual-based model of a clonal population expanding in a periodic
2-D habitat:
  - Hybrid dispersal kernel (uniform core + power-law tail)
  - Poisson offspring, hard neighbour-count crowding regulation
  - Isolated-founder saturation tracking with checkpointed restarts
"""

__version__ = "0.1.0"

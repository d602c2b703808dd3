"""colonization_sim visualization library.

Modules:
  - style: Dark theme colours and helpers
  - saturation: Population trajectory, saturation curves, colony map
"""

from colonization_sim.viz.style import (  # noqa: F401
    ACCENT_COLORS,
    DARK_BG,
    DARK_PANEL,
    GRID_COLOR,
    OUTCOME_COLORS,
    TEXT_COLOR,
    apply_dark_theme,
    dark_figure,
    dark_legend,
    outcome_color,
    save_figure,
)

from colonization_sim.viz.saturation import (  # noqa: F401
    plot_population_trajectory,
    plot_saturation_curves,
    plot_colony_map,
)

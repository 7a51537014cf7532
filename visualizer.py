"""
visualizer.py — Matplotlib Viewer
==================================
Shows the simulation grid in a window instead of a terminal:
  - left  : dye density, coloured with the active theme
  - right : velocity magnitude

Keys are translated into the same commands a terminal front-end sends:

  p pause      n step once    c vorticity    f continuous emit
  x next theme r reset        space one pulse
  + / - speed  arrows move the emitter
  d debug: solver metrics in the figure title (the digit overlay
    is drawn by the terminal renderer only)

Uses matplotlib FuncAnimation for real-time updates.
"""

import matplotlib.pyplot as plt
import matplotlib.animation as animation
from matplotlib.colors import LinearSegmentedColormap

from fluidlite import Command, MoveEmitter, Theme
from fluidlite.themes import COLOR_EMITTER, INTENSITY_COLORS

MOVE_STEP = 2.0

KEY_COMMANDS = {
    "p": Command.TOGGLE_PAUSE,
    "n": Command.STEP_ONCE,
    "c": Command.TOGGLE_VORTICITY,
    "f": Command.TOGGLE_CONTINUOUS_EMIT,
    "d": Command.TOGGLE_DEBUG,
    "x": Command.NEXT_THEME,
    "r": Command.RESET,
    " ": Command.INJECT_ONCE,
    "+": Command.SPEED_UP,
    "=": Command.SPEED_UP,
    "-": Command.SPEED_DOWN,
    "up": MoveEmitter(0.0, -MOVE_STEP),
    "down": MoveEmitter(0.0, MOVE_STEP),
    "left": MoveEmitter(-MOVE_STEP, 0.0),
    "right": MoveEmitter(MOVE_STEP, 0.0),
}


def command_for_key(key):
    """Command bound to a matplotlib key name, or None."""
    return KEY_COMMANDS.get(key)


def theme_colormap(theme: Theme) -> LinearSegmentedColormap:
    """Background → intensity bands, as a continuous colormap."""
    indices = (0,) + INTENSITY_COLORS
    colors = [tuple(c / 255.0 for c in theme.rgb(i)) for i in indices]
    return LinearSegmentedColormap.from_list(theme.name, colors)


def _release_default_keymaps():
    """Drop matplotlib's own bindings for the keys the viewer uses."""
    for name in [k for k in plt.rcParams.keys() if k.startswith("keymap.")]:
        plt.rcParams[name] = [k for k in plt.rcParams[name] if k not in KEY_COMMANDS]


class FluidVisualizer:
    """
    Real-time viewer of a SimulationLoop.

    Usage (standalone):
        from fluidlite import SimulationLoop
        from visualizer import FluidVisualizer

        loop = SimulationLoop(96, 48, seed_ring=True)
        FluidVisualizer(loop).run()
    """

    def __init__(self, loop):
        """
        Args:
            loop : SimulationLoop instance
        """
        self.loop = loop
        self._theme_index = None
        _release_default_keymaps()
        self._setup_figure()

    def _setup_figure(self):
        """Initialize the matplotlib figure with 2 subplots."""
        self.fig, self.axes = plt.subplots(1, 2, figsize=(14, 5))
        self.fig.patch.set_facecolor('#0a0a0a')

        field = self.loop.field
        titles = ["density", "speed"]
        self.imgs = []

        for ax, title in zip(self.axes, titles):
            ax.set_facecolor('#0a0a0a')
            ax.set_title(title, color='#aaaaaa', fontsize=9, fontfamily='monospace')
            ax.set_xticks([])
            ax.set_yticks([])
            for spine in ax.spines.values():
                spine.set_edgecolor('#333333')

            # Field is [x, y] with y growing downwards → transpose, origin upper
            img = ax.imshow(
                field.density.T,
                vmin=0, vmax=1.0,
                interpolation='bilinear',
                origin='upper',
                aspect='equal'
            )
            self.imgs.append(img)

        self.imgs[1].set_cmap('magma')
        self.marker, = self.axes[0].plot([], [], marker='o', markersize=6,
                                         markerfacecolor='none', linestyle='none')
        self._apply_theme()

        self.title_text = self.fig.suptitle(
            "Fluid Lite — frame 0",
            color='#cccccc', fontsize=10, fontfamily='monospace'
        )

        self.fig.canvas.mpl_connect('key_press_event', self.on_key)
        plt.tight_layout()

    def _apply_theme(self):
        theme = self.loop.theme
        if self._theme_index == self.loop.params.theme_index:
            return
        self._theme_index = self.loop.params.theme_index
        self.imgs[0].set_cmap(theme_colormap(theme))
        self.marker.set_markeredgecolor(tuple(c / 255.0 for c in theme.rgb(COLOR_EMITTER)))

    def on_key(self, event):
        command = command_for_key(event.key)
        if command is not None:
            self.loop.apply(command)

    def update(self, frame_num):
        """Called by FuncAnimation each frame. Ticks the loop and updates plots."""
        self.loop.tick()
        field = self.loop.field

        density = field.density.T
        speed = field.speed().T
        self.imgs[0].set_data(density)
        self.imgs[0].set_clim(0.0, max(float(density.max()), 1e-6))
        self.imgs[1].set_data(speed)
        self.imgs[1].set_clim(0.0, max(float(speed.max()), 1e-6))

        self._apply_theme()
        ex, ey = self.loop.emitter.position
        self.marker.set_data([ex], [ey])

        stats = self.loop.stats()
        text = f"Fluid Lite — frame {stats['frame']} | {stats['state']} | theme {stats['theme']}"
        if self.loop.params.debug:
            metrics = self.loop.last_metrics or {}
            text += (
                f" | dt={stats['dt']:.3f} | maxD={stats['max_density']:.2f}"
                f" | div_max={metrics.get('divergence_max', 0.0):.5f}"
                f" | {metrics.get('total_ms', 0.0):.1f}ms"
            )
        self.title_text.set_text(text)

        return self.imgs + [self.marker, self.title_text]

    def run(self, fps: int = 30, frames: int = None):
        """
        Start the live animation window.

        Args:
            fps    : Target animation frame rate
            frames : Total frames to render (None = infinite)
        """
        interval_ms = 1000 // fps
        self.anim = animation.FuncAnimation(
            self.fig,
            self.update,
            frames=frames,
            interval=interval_ms,
            blit=False,
            cache_frame_data=False,
        )
        plt.show()

    def save_gif(self, path: str = "fluid_lite.gif", fps: int = 15, frames: int = 100):
        """Save animation as a GIF."""
        print(f"Rendering {frames} frames to {path}...")
        self.anim = animation.FuncAnimation(
            self.fig, self.update, frames=frames, interval=1000 // fps, blit=False
        )
        writer = animation.PillowWriter(fps=fps)
        self.anim.save(path, writer=writer)
        print(f"Saved: {path}")

"""
main.py — Entry Point
======================
Runs the fluid toy in one of four front-ends.

Usage:
    python main.py                      # Braille frames in this terminal (default)
    python main.py --mode live          # Matplotlib window with keyboard controls
    python main.py --mode headless      # No display, prints stats
    python main.py --mode benchmark     # Per-stage solver timings
    python main.py --glyphs quadrant    # 2x2 block characters instead of Braille
"""

import argparse
import logging
import math
import shutil
import sys
import time

import numpy as np

from fluidlite import (
    Emitter,
    Renderer,
    SimParams,
    SimulationLoop,
    grid_size_for,
)
from fluidlite.glyphs import GLYPH_SETS
from fluidlite.render import COLOR_BY_DENSITY, COLOR_BY_SPEED


logger = logging.getLogger("fluidlite.main")

# Demo settings: fast dye, strong pushes, fading trails
TOY_DT = 0.12
TOY_VISCOSITY = 0.002
TOY_DIFFUSION = 0.0005
TOY_FADE = 0.003
TOY_VORTICITY = 7.5


def make_loop(width: int, height: int, continuous: bool = True) -> SimulationLoop:
    """The demo loop: spinning dye ring, continuous emitter, random pulse directions."""
    params = SimParams(dt=TOY_DT, viscosity=TOY_VISCOSITY, diffusion=TOY_DIFFUSION,
                       dye_fade=TOY_FADE, vorticity_strength=TOY_VORTICITY)
    radius = max(2.0, min(width, height) * 0.08)
    emitter = Emitter(width * 0.5, height * 0.5, strength=10.0 * radius * radius,
                      force=14.0, radius=radius, continuous=continuous)
    return SimulationLoop(width, height, params=params, emitter=emitter,
                          seed_ring=True, random_direction=True)


def _ansi_frame(frame) -> str:
    """Frame → one string of 24-bit colour escape codes."""
    theme = frame.theme
    bg = "\x1b[48;2;{};{};{}m".format(*theme.rgb(0))
    out = ["\x1b[H"]
    for r in range(frame.rows):
        out.append(bg)
        last = None
        for c in range(frame.cols):
            color = int(frame.colors[r, c])
            if color != last:
                out.append("\x1b[38;2;{};{};{}m".format(*theme.rgb(color)))
                last = color
            out.append(frame.chars[r, c])
        out.append("\x1b[0m\n")
    return "".join(out)


def _terminal_cells() -> tuple[int, int]:
    """Character area for the picture: the terminal minus the status line."""
    size = shutil.get_terminal_size((80, 24))
    return size.columns, max(4, size.lines - 2)


def _status_line(stats: dict, theme) -> str:
    """One HUD line in the theme's panel colours."""
    fg = "\x1b[38;2;{};{};{}m".format(*theme.panel_fg)
    bg = "\x1b[48;2;{};{};{}m".format(*theme.panel_bg)
    return (
        f"{bg}{fg}frame {stats['frame']:5d} | {stats['theme']} | maxD {stats['max_density']:7.2f} "
        f"| speed {stats['max_speed']:6.2f}\x1b[K\x1b[0m"
    )


def run_terminal(frames: int, fps: int, glyphs: str, downsample: int, color_source: str):
    """
    Animate Braille frames on stdout (no keyboard input).

    The terminal size is polled every frame; on a change the grid is
    rebuilt for the new size and the screen is cleared.
    """
    renderer = Renderer(glyphs=GLYPH_SETS[glyphs], color_source=color_source)
    cols = rows = None
    loop = None

    sys.stdout.write("\x1b[?25l")
    frame_time = 1.0 / fps
    try:
        for f in range(frames):
            t0 = time.perf_counter()

            size = _terminal_cells()
            if size != (cols, rows):
                cols, rows = size
                width, height = grid_size_for(cols, rows, renderer.glyphs, downsample)
                loop = make_loop(width, height)
                logger.info("Terminal %dx%d cells, grid %dx%d", cols, rows, width, height)
                sys.stdout.write("\x1b[2J")

            # Slowly orbit the emitter so the picture keeps changing
            loop.emitter.x = width * (0.5 + 0.25 * math.cos(f * 0.02))
            loop.emitter.y = height * (0.5 + 0.25 * math.sin(f * 0.03))
            frame = loop.frame(renderer, cols, rows)
            sys.stdout.write(_ansi_frame(frame))
            sys.stdout.write(_status_line(loop.stats(), frame.theme))
            sys.stdout.flush()
            time.sleep(max(0.0, frame_time - (time.perf_counter() - t0)))
    except KeyboardInterrupt:
        pass
    finally:
        sys.stdout.write("\x1b[0m\x1b[?25h\n")


def run_live(width: int, height: int):
    """Live interactive visualization."""
    from visualizer import FluidVisualizer

    print(f"Starting live simulation ({width}x{height})...")
    print("Keys: p pause, n step, c vorticity, f emit, x theme, r reset, space pulse, arrows move.\n")

    viz = FluidVisualizer(make_loop(width, height))
    viz.run(fps=30)


def run_headless(width: int, height: int, frames: int = 100):
    """Run simulation without display — prints stats every 10 frames."""
    print(f"\nHeadless simulation | {width}x{height} | {frames} frames")
    print(f"{'─'*60}")

    loop = make_loop(width, height)
    total_times = []

    for f in range(frames):
        metrics = loop.tick()
        total_times.append(metrics["total_ms"])

        if f % 10 == 0:
            print(f"  Frame {f:03d} | {metrics['total_ms']:6.1f}ms | "
                  f"div_max={metrics['divergence_max']:.5f} | "
                  f"density={metrics['density_total']:.1f}")

    print(f"\n{'─'*60}")
    print(f"  Average: {np.mean(total_times):.1f}ms/step ({1000/np.mean(total_times):.1f} steps/s)")
    print(f"  Min:     {np.min(total_times):.1f}ms")
    print(f"  Max:     {np.max(total_times):.1f}ms")


def run_benchmark(width: int, height: int, frames: int = 50):
    """Detailed per-stage breakdown of one solver step."""
    print(f"\n{'='*60}")
    print(f"  SOLVER BENCHMARK | {width}x{height} | {frames} frames")
    print(f"{'='*60}")

    loop = make_loop(width, height)

    # Warm up
    for _ in range(5):
        loop.tick()

    logs = [loop.tick() for _ in range(frames)]

    keys = ["diffuse_vel_ms", "project1_ms", "advect_vel_ms", "vorticity_ms",
            "project2_ms", "diffuse_den_ms", "advect_den_ms", "total_ms"]

    print(f"\n{'Step':<20} {'Mean':>8} {'Min':>8} {'Max':>8}")
    print(f"{'─'*50}")
    for k in keys:
        vals = [m[k] for m in logs]
        print(f"  {k:<18} {np.mean(vals):>7.2f}ms {np.min(vals):>7.2f}ms {np.max(vals):>7.2f}ms")

    total_vals = [m["total_ms"] for m in logs]
    print(f"\n{'─'*50}")
    print(f"  Steps/s (solver only): {1000/np.mean(total_vals):.1f}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Grid fluid rendered with Braille")
    parser.add_argument(
        "--mode", choices=["term", "live", "headless", "benchmark"],
        default="term",
        help="Run mode (default: term)"
    )
    parser.add_argument("--width",  type=int, default=96, help="Grid width for live/headless/benchmark")
    parser.add_argument("--height", type=int, default=48, help="Grid height for live/headless/benchmark")
    parser.add_argument("--frames", type=int, default=None, help="Number of frames")
    parser.add_argument("--fps",    type=int, default=30, help="Terminal frame rate cap")
    parser.add_argument("--glyphs", choices=sorted(GLYPH_SETS), default="braille")
    parser.add_argument("--downsample", type=int, default=2,
                        help="Terminal mode: dots per grid cell along each axis")
    parser.add_argument("--color", choices=[COLOR_BY_DENSITY, COLOR_BY_SPEED], default=COLOR_BY_DENSITY)
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.mode == "term":
        run_terminal(frames=args.frames or 10_000, fps=args.fps, glyphs=args.glyphs,
                     downsample=args.downsample, color_source=args.color)
    elif args.mode == "live":
        run_live(args.width, args.height)
    elif args.mode == "headless":
        run_headless(args.width, args.height, frames=args.frames or 100)
    elif args.mode == "benchmark":
        run_benchmark(args.width, args.height, frames=args.frames or 50)


if __name__ == "__main__":
    main()

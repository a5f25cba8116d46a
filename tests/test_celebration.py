import numpy as np
import pytest

from derby_draw.engine.celebration import (
    DRAG,
    FIREWORK_COLORS,
    GRAVITY,
    FireworksShow,
    celebration_rng,
)


def test_seeded_show_replays():
    first = FireworksShow(celebration_rng("abc"))
    second = FireworksShow(celebration_rng("abc"))
    assert len(first) == len(second)
    assert np.array_equal(first.positions, second.positions)
    assert np.array_equal(first.velocities, second.velocities)


def test_bursts_spawn_within_configured_ranges():
    show = FireworksShow(celebration_rng("ranges"))
    assert 6 * 60 <= len(show) <= 6 * 109
    assert np.all((show.positions[:, 0] >= 0.3) & (show.positions[:, 0] < 0.7))
    assert np.all((show.positions[:, 1] >= 0.35) & (show.positions[:, 1] < 0.65))
    speeds = np.hypot(show.velocities[:, 0], show.velocities[:, 1])
    assert np.all(speeds >= 0.35 - 1e-9)
    assert np.all(speeds <= 1.2 + 1e-9)
    assert np.all((show.lives >= 1.0) & (show.lives < 2.2))


def test_step_applies_drag_gravity_and_decay():
    show = FireworksShow(celebration_rng("physics"), bursts=1)
    before_pos = show.positions.copy()
    before_vel = show.velocities.copy()
    before_life = show.lives.copy()

    show.step(0.05)

    expected_vel = before_vel * DRAG
    expected_vel[:, 1] += GRAVITY * 0.05
    assert np.allclose(show.velocities, expected_vel)
    assert np.allclose(show.positions, before_pos + expected_vel * 0.05 * 0.5)
    assert np.allclose(show.lives, before_life - 0.025)


def test_particles_expire():
    show = FireworksShow(celebration_rng("fade"))
    for _ in range(100):
        show.step(0.05)
    assert show.is_spent
    assert show.particles() == []
    show.step(0.05)


def test_particles_export_palette_colors():
    show = FireworksShow(celebration_rng("colors"), bursts=2)
    particles = show.particles()
    assert len(particles) == len(show)
    assert {particle.color for particle in particles} <= set(FIREWORK_COLORS)
    assert particles[0].life == pytest.approx(float(show.lives[0]))


def test_empty_show():
    show = FireworksShow(celebration_rng(None), bursts=0)
    assert show.is_spent
    show.step(0.05)
    assert show.particles() == []

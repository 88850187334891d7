"""
Test the vortex solver: kernels, elements, no-flow-through, shedding and
time integration.
"""

import pytest
import numpy as np
from pathlib import Path

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.geometry import (naca4_coordinates, polygon_centroid, PowerMap, RigidBody,
                           Motion, Fixed, ConstantMotion)
from solvers.vortex2d import (induced_velocity, VortexElements, Freestream, SystemState,
                              StateBuffers, enforce_no_flow_through, circle_plane_velocity,
                              transform_velocity, compute_velocity, Edge,
                              EdgeSheddingModel, edge_suction, vorticity_flux, unit_suction,
                              ForwardEuler, Simulation, tracer_block, SheddingError)


@pytest.fixture(scope="module")
def naca_map():
    vertices = naca4_coordinates(0.04, 0.4, 0.12, num_points=60)
    vertices = vertices - polygon_centroid(vertices)
    return PowerMap.from_airfoil(vertices, num_coefficients=64, num_samples=512)


def make_state(conformal_map, angle_deg=-10.0, freestream=1.0 + 0j, edges=(0,)):
    body = RigidBody(conformal_map, centroid=0.1 + 0.05j, angle=np.deg2rad(angle_deg),
                     edges=list(edges))
    return SystemState(body, Freestream(freestream))


def make_simulation(conformal_map, criteria=(0.0,), vertices=(0,), dt=0.01, **kwargs):
    body = RigidBody(conformal_map, angle=np.deg2rad(-10.0), edges=list(vertices))
    edges = [Edge(v, c) for v, c in zip(vertices, criteria)]
    return Simulation(body, Freestream(1.0), edges=edges, dt=dt, blob_radius=0.02, **kwargs)


def boundary_stream_rate(body, motion, zeta):
    """d(psi_body)/d(theta) the body motion imposes along the circle."""
    zeta = np.asarray(zeta, dtype=np.complex128)
    r = body.rotation * body.map.forward(zeta)
    dr = 1j * zeta * body.derivative(zeta)
    return (np.imag(np.conj(motion.c_dot) * dr)
            - motion.alpha_dot * np.real(np.conj(r) * dr))


class TestKernels:
    """Test regularized Biot-Savart kernels."""

    def test_singular_point_vortex(self):
        targets = np.array([1.0 + 0j, 0.3 - 2.0j])
        w = induced_velocity(targets, np.array([0.2 + 0.1j]), np.array([1.5]))
        expected = 1.5 / (2j * np.pi * (targets - (0.2 + 0.1j)))
        np.testing.assert_allclose(w, expected, rtol=1e-12)

    def test_algebraic_regularization(self):
        delta = 0.1
        w = induced_velocity(np.array([0.05 + 0j]), np.array([0j]), np.array([1.0]), delta)
        r = 0.05
        assert abs(abs(w[0]) - r / (2 * np.pi * (r**2 + delta**2))) < 1e-12

    def test_gaussian_far_field(self):
        targets = np.array([3.0 + 1.0j])
        sources, strengths = np.array([0j]), np.array([2.0])
        w_g = induced_velocity(targets, sources, strengths, 0.05, kernel="gaussian")
        w_s = induced_velocity(targets, sources, strengths)
        np.testing.assert_allclose(w_g, w_s, rtol=1e-12)

    def test_coincident_points_skipped(self):
        w = induced_velocity(np.array([0.5 + 0.5j]), np.array([0.5 + 0.5j]), np.array([1.0]))
        assert w[0] == 0

    def test_empty_inputs(self):
        w = induced_velocity(np.zeros((2, 3), dtype=complex), np.zeros(0), np.zeros(0))
        assert w.shape == (2, 3)
        assert np.all(w == 0)

    def test_unknown_kernel(self):
        with pytest.raises(ValueError):
            induced_velocity(np.array([1j]), np.array([0j]), np.array([1.0]), kernel="rankine")


class TestElements:
    """Test element storage and state buffers."""

    def test_append_grows_capacity(self):
        elements = VortexElements(capacity=2)
        for i in range(5):
            assert elements.append(complex(i, 1), float(i)) == i
        assert len(elements) == 5
        assert elements.capacity >= 5
        np.testing.assert_array_equal(elements.strengths, [0, 1, 2, 3, 4])
        assert elements.total_circulation == 10.0

    def test_mismatched_shapes(self):
        with pytest.raises(ValueError):
            VortexElements(np.array([1j, 2j]), np.array([1.0]))

    def test_copy_is_independent(self):
        elements = VortexElements(np.array([2j]), np.array([1.0]))
        clone = elements.copy()
        clone.positions[0] = 5.0
        assert elements.positions[0] == 2j

    def test_buffers_swap(self):
        state = SystemState(RigidBody(PowerMap.circle()), Freestream(1.0),
                            VortexElements(np.array([2.0 + 0j]), np.array([0.5])))
        buffers = StateBuffers(state)
        nxt = buffers.prepare_next()
        assert nxt is not state
        nxt.blobs.append(3.0 + 0j, 0.1)
        nxt.body.centroid = 1.0 + 0j
        assert len(state.blobs) == 1
        assert state.body.centroid == 0
        assert buffers.swap() is nxt
        assert buffers.current is nxt
        assert buffers.next is state

    def test_snapshot_is_read_only(self):
        state = SystemState(RigidBody(PowerMap.circle(), centroid=1.0 + 0j), Freestream(1.0),
                            VortexElements(np.array([2.0 + 0j]), np.array([0.5])))
        snap = state.snapshot(0.3)
        assert snap.blob_positions[0] == 3.0 + 0j
        with pytest.raises(ValueError):
            snap.blob_positions[0] = 0.0

    def test_freestream_from_speed(self):
        fs = Freestream.from_speed(2.0, 90.0)
        assert abs(fs.velocity - 2.0j) < 1e-12
        assert abs(fs.speed - 2.0) < 1e-12


class TestNoFlowThrough:
    """The bound system cancels the relative normal velocity on the body."""

    @pytest.mark.parametrize("motion", [
        Motion(),
        Motion(c_dot=0.3 - 0.2j),
        Motion(alpha_dot=0.7),
        Motion(c_dot=-0.5 + 0.1j, alpha_dot=-1.3),
    ])
    def test_boundary_stream_function(self, naca_map, motion):
        state = make_state(naca_map)
        state.blobs.append(1.5 + 0.5j, 0.7)
        state.blobs.append(-1.2 - 1.1j, -0.3)
        state.tracers.append(2.0 + 2.0j, 0.0)
        enforce_no_flow_through(state.body, motion, state.sources())

        zeta = np.exp(1j * np.linspace(0, 2 * np.pi, 181, endpoint=False))
        w = circle_plane_velocity(state, zeta, delta=0.0)
        np.testing.assert_allclose(np.real(zeta * w),
                                   boundary_stream_rate(state.body, motion, zeta),
                                   atol=1e-10)

    def test_joukowski_rotation(self):
        state = make_state(PowerMap.joukowski(0.25, -0.02 + 0.03j), freestream=0j)
        motion = Motion(alpha_dot=2.0)
        enforce_no_flow_through(state.body, motion, state.sources())
        zeta = np.exp(1j * np.linspace(0, 2 * np.pi, 90, endpoint=False))
        w = circle_plane_velocity(state, zeta, delta=0.0)
        np.testing.assert_allclose(np.real(zeta * w),
                                   boundary_stream_rate(state.body, motion, zeta),
                                   atol=1e-10)

    def test_bound_circulation_cancels_free(self, naca_map):
        state = make_state(naca_map)
        state.blobs.append(1.5 + 0.5j, 0.7)
        state.blobs.append(-1.2 - 1.1j, -0.3)
        bound = enforce_no_flow_through(state.body, Motion(), state.sources())
        assert state.body.bound is bound
        assert abs(bound.circulation + 0.4) < 1e-14
        assert abs(state.total_circulation) < 1e-14

    def test_tracers_have_no_images(self, naca_map):
        state = make_state(naca_map)
        state.tracers.append(2.0 + 0j, 0.0)
        bound = enforce_no_flow_through(state.body, Motion(), state.sources())
        assert bound.image_positions.size == 0

    def test_unknown_source(self, naca_map):
        state = make_state(naca_map)
        with pytest.raises(TypeError):
            enforce_no_flow_through(state.body, Motion(), [object()])

    def test_velocity_requires_bound(self, naca_map):
        state = make_state(naca_map)
        with pytest.raises(RuntimeError):
            circle_plane_velocity(state, np.array([2.0 + 0j]), 0.0)


class TestVelocity:
    """Test the transform to circle-plane rates."""

    def test_uniform_flow_on_circle(self):
        body = RigidBody(PowerMap.circle(2.0))
        zeta = np.array([10.0 + 10.0j])
        # Far from the body the physical velocity is the freestream
        rate = transform_velocity(body, Motion(), zeta, np.array([2.0 + 0j]))
        assert abs(rate[0] * 2.0 - 1.0) < 1e-12

    def test_body_frame_rate(self):
        body = RigidBody(PowerMap.circle())
        zeta = np.array([3.0 + 0j])
        # Fluid at rest, body translating: relative coordinate moves backwards
        rate = transform_velocity(body, Motion(c_dot=1.0 + 0j), zeta, np.array([0j]))
        assert abs(rate[0] + 1.0) < 1e-12

    def test_compute_velocity_buffers(self, naca_map):
        state = make_state(naca_map)
        state.blobs.append(2.0 + 0j, 0.1)
        state.tracers.append(0.0 + 3.0j, 0.0)
        state.tracers.append(-3.0 + 0j, 0.0)
        enforce_no_flow_through(state.body, Motion(), state.sources())
        out_b = np.full(1, 99.0 + 0j)
        out_t = np.full(2, 99.0 + 0j)
        blob_rates, tracer_rates = compute_velocity(state, Motion(), 0.0, 0.02,
                                                    out_blobs=out_b, out_tracers=out_t)
        assert blob_rates is out_b
        assert tracer_rates is out_t
        assert np.all(np.isfinite(out_t)) and np.all(np.abs(out_t) < 50)

    def test_empty_system(self, naca_map):
        state = make_state(naca_map)
        enforce_no_flow_through(state.body, Motion(), state.sources())
        blob_rates, tracer_rates = compute_velocity(state, Motion(), 0.0, 0.02)
        assert blob_rates.size == 0 and tracer_rates.size == 0


class TestShedding:
    """Test edge suction and blob release."""

    def test_seed_satisfies_kutta(self, naca_map):
        state = make_state(naca_map)
        model = EdgeSheddingModel([Edge(0, 0.0)], seed_offset=0.03)
        gammas = model.seed(state, Motion(), 0.0)
        assert len(state.blobs) == 1
        assert gammas[0] != 0.0
        assert abs(edge_suction(state, 0)) < 1e-8
        # Seed sits at the requested distance from the edge
        z = state.body.to_physical(state.blobs.positions[0])
        assert abs(abs(z - state.body.edge_position(0)) - 0.03) < 1e-8

    def test_vorticity_flux_matches_shed(self, naca_map):
        state = make_state(naca_map)
        model = EdgeSheddingModel([Edge(0, 0.0)], seed_offset=0.03)
        candidate = model.seed_position(state.body, 0)
        predicted = vorticity_flux(state.body, 0, state, candidate, Motion(), 0.0)
        gammas = model.seed(state, Motion(), 0.0)
        assert abs(predicted - gammas[0]) < 1e-10 * max(1.0, abs(predicted))

    def test_suppressed_edge(self, naca_map):
        state = make_state(naca_map)
        model = EdgeSheddingModel([Edge(0, np.inf)])
        assert model.seed(state, Motion(), 0.0).size == 0
        assert model.shed(state, Motion(), 0.0).size == 0
        assert len(state.blobs) == 0

    def test_large_criterion_releases_empty_blob(self, naca_map):
        state = make_state(naca_map)
        model = EdgeSheddingModel([Edge(0, 1e6)], seed_offset=0.03)
        gammas = model.seed(state, Motion(), 0.0)
        assert len(state.blobs) == 1
        assert gammas[0] == 0.0

    def test_finite_criterion_reached(self, naca_map):
        state = make_state(naca_map)
        enforce_no_flow_through(state.body, Motion(), state.sources())
        sigma0 = edge_suction(state, 0)
        criterion = 0.25 * abs(sigma0)
        model = EdgeSheddingModel([Edge(0, criterion)], seed_offset=0.03)
        model.seed(state, Motion(), 0.0)
        assert abs(abs(edge_suction(state, 0)) - criterion) < 1e-8

    def test_two_edges(self, naca_map):
        state = make_state(naca_map, angle_deg=-30.0, edges=(0, 60))
        model = EdgeSheddingModel([Edge(0, 0.0), Edge(60, 0.0)], seed_offset=0.03)
        model.seed(state, Motion(), 0.0)
        assert len(state.blobs) == 2
        assert abs(edge_suction(state, 0)) < 1e-8
        assert abs(edge_suction(state, 1)) < 1e-8

    def test_pushed_edge_joins_solve(self, naca_map):
        state = make_state(naca_map, angle_deg=-30.0, edges=(0, 60))
        model = EdgeSheddingModel([Edge(0, 0.0), Edge(60, 0.0)], seed_offset=0.03)
        enforce_no_flow_through(state.body, Motion(), state.sources())
        sigma0 = np.array([edge_suction(state, k) for k in (0, 1)])
        placements = [model.seed_position(state.body, k) for k in (0, 1)]
        S = unit_suction([state.body.edge_prevertex(k) for k in (0, 1)], placements)
        # Suction at edge 1 once edge 0 alone has met the Kutta condition
        sigma1 = sigma0[1] - S[1, 0] * sigma0[0] / S[0, 0]
        criterion = 0.5 * (abs(sigma0[1]) + abs(sigma1))

        model.edges[1] = Edge(60, criterion)
        model.seed(state, Motion(), 0.0)
        assert len(state.blobs) == 2
        assert abs(edge_suction(state, 0)) < 1e-8
        assert abs(abs(edge_suction(state, 1)) - criterion) < 1e-8

    def test_next_position_spacing(self, naca_map):
        state = make_state(naca_map)
        model = EdgeSheddingModel([Edge(0, 0.0)], spacing_fraction=0.25, seed_offset=0.04)
        model.seed(state, Motion(), 0.0)
        z_prev = state.body.to_physical(state.blobs.positions[0])
        zeta_new = model.next_position(state, 0)
        z_e = state.body.edge_position(0)
        expected = z_e + 0.25 * (z_prev - z_e)
        assert abs(state.body.to_physical(zeta_new) - expected) < 1e-9
        assert abs(zeta_new) > 1.0

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            Edge(0, -1.0)
        with pytest.raises(ValueError):
            EdgeSheddingModel([Edge(0)], spacing_fraction=1.5)
        with pytest.raises(ValueError):
            EdgeSheddingModel([Edge(0)], seed_offset=0.0)


class TestIntegrator:
    """Test time stepping and failure isolation."""

    def test_failed_step_leaves_state_untouched(self, naca_map, monkeypatch):
        sim = make_simulation(naca_map)
        sim.initialize()
        before = sim.state.blobs.positions.copy()
        history = sim.shedding.copy_history()

        def fail(*args, **kwargs):
            sim.shedding.released[0].append(999)
            raise SheddingError("forced")

        monkeypatch.setattr(sim.shedding, "shed", fail)
        with pytest.raises(SheddingError):
            sim.step()
        np.testing.assert_array_equal(sim.state.blobs.positions, before)
        assert sim.shedding.released == history
        assert sim.step_count == 0

    def test_invalid_blob_radius(self):
        with pytest.raises(ValueError):
            ForwardEuler(Fixed(), None, blob_radius=0.0)

    def test_moving_body_in_still_fluid(self):
        body = RigidBody(PowerMap.circle())
        state = SystemState(body, Freestream(0j),
                            tracers=VortexElements(np.array([3.0 + 0j]), np.zeros(1)))
        buffers = StateBuffers(state)
        integrator = ForwardEuler(ConstantMotion(1.0 + 0j), None, blob_radius=0.05)
        current = integrator.step(buffers, 0.0, 0.1)
        assert abs(current.body.centroid - 0.1) < 1e-14


class TestSimulation:
    """Test the simulation driver invariants."""

    def test_kutta_and_circulation_each_step(self, naca_map):
        sim = make_simulation(naca_map)
        sim.initialize()
        for n in range(1, 16):
            state = sim.step()
            assert len(state.blobs) == n + 1
            assert abs(edge_suction(state, 0)) < 1e-8
            assert abs(state.total_circulation) < 1e-12

    def test_circulation_changes_by_shed_blob(self, naca_map):
        sim = make_simulation(naca_map)
        sim.initialize()
        for _ in range(10):
            free = sim.state.blobs.total_circulation
            bound = sim.state.body.bound.circulation
            state = sim.step()
            shed = state.blobs.strengths[-1]
            assert shed != 0.0
            assert state.blobs.total_circulation - free == pytest.approx(shed, abs=1e-12)
            assert state.body.bound.circulation - bound == pytest.approx(-shed, abs=1e-12)

    def test_unexceeded_criterion_keeps_circulation(self, naca_map):
        sim = make_simulation(naca_map, criteria=(1e6,))
        sim.initialize()
        for n in range(1, 6):
            free = sim.state.blobs.total_circulation
            bound = sim.state.body.bound.circulation
            state = sim.step()
            assert len(state.blobs) == n + 1
            assert state.blobs.strengths[-1] == 0.0
            assert state.blobs.total_circulation == free
            assert state.body.bound.circulation == bound

    def test_suppressed_edge_beside_active_edge(self, naca_map):
        sim = make_simulation(naca_map, criteria=(0.0, np.inf), vertices=(0, 60))
        sim.initialize()
        assert len(sim.state.blobs) == 1
        for n in range(1, 21):
            state = sim.step()
            assert len(state.blobs) == n + 1
            assert abs(edge_suction(state, 0)) < 1e-8
        assert sim.shedding.released[1] == []
        assert sim.shedding.released[0] == list(range(21))

    def test_failed_seed_leaves_state_empty(self, naca_map, monkeypatch):
        sim = make_simulation(naca_map)

        def fail(*args, **kwargs):
            raise SheddingError("forced")

        monkeypatch.setattr(sim.shedding, "_solve", fail)
        with pytest.raises(SheddingError):
            sim.initialize()
        assert len(sim.state.blobs) == 0
        assert sim.shedding.released == [[]]
        assert sim.trajectory.times.size == 0

        monkeypatch.undo()
        sim.initialize()
        assert len(sim.state.blobs) == 1

    def test_no_shedding_edge(self, naca_map):
        sim = make_simulation(naca_map, criteria=(np.inf,))
        sim.run(0.1)
        assert len(sim.state.blobs) == 0
        assert abs(sim.state.body.bound.circulation) < 1e-14

    def test_snapshot_cadence(self, naca_map):
        sim = make_simulation(naca_map, sample_every=5)
        trajectory = sim.run(0.2)
        assert trajectory.num_steps == 20
        assert len(trajectory.snapshots) == 5
        assert [s.t for s in trajectory.snapshots][:2] == pytest.approx([0.0, 0.05])

    def test_tracers_follow_flow(self, naca_map):
        body = RigidBody(naca_map, angle=np.deg2rad(-10.0), edges=[0])
        tracers = tracer_block(body, -1.5 + 0j, 0.2, 3)
        assert tracers.size == 9
        sim = Simulation(body, Freestream(1.0), edges=[Edge(0)], dt=0.01,
                         blob_radius=0.02, tracers=tracers)
        x0 = body.to_physical(tracers).real.mean()
        sim.run(0.1)
        x1 = sim.state.body.to_physical(sim.state.tracers.positions).real.mean()
        assert 0.05 < x1 - x0 < 0.15

    def test_edge_count_mismatch(self, naca_map):
        body = RigidBody(naca_map, edges=[0])
        with pytest.raises(ValueError):
            Simulation(body, Freestream(1.0), edges=[], dt=0.01)

    def test_reproducible(self, naca_map):
        runs = []
        for _ in range(2):
            sim = make_simulation(naca_map)
            runs.append(sim.run(0.1).impulses)
        np.testing.assert_array_equal(runs[0], runs[1])

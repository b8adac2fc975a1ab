import pytest

from taqlp.errors import FormulationError
from taqlp.parameter import AggFunc, AggregatedParameter, ConstantParameter, ControlCurveParameter, TimeSeriesParameter
from taqlp.recorder import AssertionRecorder, EdgeFlow, MemoryRecorder, NodeVolume
from taqlp.simulation import RunStatus, Simulation
from taqlp.testing import (
    make_catchment,
    make_edge,
    make_input,
    make_link,
    make_network,
    make_output,
    make_parameters,
    make_storage,
    make_timestepper,
    storage_model,
    two_node_model,
)


def run(network, parameters, n_steps, **kwargs):
    recorder = MemoryRecorder()
    summary = Simulation(network, parameters, make_timestepper(n_steps, **kwargs), recorders=[recorder]).run()
    assert summary.status is RunStatus.COMPLETED
    return recorder.results


class TestTwoNodeNetwork:
    def test_demand_met_every_step(self):
        network, parameters = two_node_model(supply=10.0, demand=8.0)
        results = run(network, parameters, 3)
        assert len(results) == 3
        for result in results:
            assert result.flows["input->output"] == pytest.approx(8.0)
            assert result.objective == pytest.approx(0.0)
            assert result.deficits["output"] == pytest.approx(0.0)
            assert result.volumes == {}

    def test_supply_used_and_delivered(self):
        network, parameters = two_node_model(supply=10.0, demand=8.0)
        result = run(network, parameters, 1)[0]
        assert result.inflows["input"] == pytest.approx(8.0)
        assert result.outflows["output"] == pytest.approx(8.0)

    def test_shortage_recorded_as_deficit(self):
        network, parameters = two_node_model(supply=6.0, demand=8.0)
        result = run(network, parameters, 1)[0]
        assert result.flows["input->output"] == pytest.approx(6.0)
        assert result.deficits["output"] == pytest.approx(2.0)


class TestStorageNetwork:
    def test_volume_rises_by_net_inflow(self):
        network, parameters = storage_model(supply=10.0, demand=5.0, max_volume=100.0, initial_volume=50.0)
        results = run(network, parameters, 5)
        assert [r.volumes["storage"] for r in results] == pytest.approx([55.0, 60.0, 65.0, 70.0, 75.0])
        for result in results:
            assert result.inflows["storage"] == pytest.approx(10.0)
            assert result.outflows["storage"] == pytest.approx(5.0)

    def test_excess_supply_unused_once_full(self):
        network, parameters = storage_model(supply=10.0, demand=5.0, max_volume=100.0, initial_volume=90.0)
        results = run(network, parameters, 5)
        assert [r.volumes["storage"] for r in results] == pytest.approx([95.0, 100.0, 100.0, 100.0, 100.0])
        assert results[-1].inflows["input"] == pytest.approx(5.0)
        assert all(r.volumes["storage"] <= 100.0 for r in results)

    def test_reservoir_drawdown(self):
        network = make_network(
            make_storage("reservoir", max_volume=100.0, initial_volume=100.0),
            make_output(demand=10.0),
            make_edge("reservoir", "output"),
        )
        results = run(network, make_parameters(), 5)
        assert [r.volumes["reservoir"] for r in results] == pytest.approx([90.0, 80.0, 70.0, 60.0, 50.0])

    def test_reservoir_runs_dry(self):
        network = make_network(
            make_storage("reservoir", max_volume=100.0, initial_volume=25.0),
            make_output(demand=10.0),
            make_edge("reservoir", "output"),
        )
        results = run(network, make_parameters(), 4)
        assert [r.volumes["reservoir"] for r in results] == pytest.approx([15.0, 5.0, 0.0, 0.0])
        assert [r.deficits["output"] for r in results] == pytest.approx([0.0, 0.0, 5.0, 10.0])

    def test_multi_day_steps_scale_volume_change(self):
        network, parameters = storage_model(supply=10.0, demand=5.0, max_volume=100.0, initial_volume=0.0)
        results = run(network, parameters, 3, step=7)
        assert [r.volumes["storage"] for r in results] == pytest.approx([35.0, 70.0, 100.0])

    def test_contradictory_volumes_stop_the_run(self):
        network = make_network(
            make_input(max_flow=10.0),
            make_storage(min_volume="floor", max_volume=100.0, initial_volume=50.0),
            make_output(demand=5.0),
            make_edge("input", "storage"),
            make_edge("storage", "output"),
        )
        parameters = make_parameters(TimeSeriesParameter("floor", [0.0, 0.0, 200.0, 0.0, 0.0]))
        recorder = MemoryRecorder()
        sim = Simulation(network, parameters, make_timestepper(5), recorders=[recorder])

        with pytest.raises(FormulationError) as exc_info:
            sim.run()

        assert exc_info.value.step == 2
        assert exc_info.value.entity == "storage"
        assert sim.status is RunStatus.FAILED
        assert len(recorder) == 2
        assert network.volumes()["storage"] == pytest.approx(60.0)

    def test_storage_above_lowered_maximum_keeps_running(self):
        network = make_network(
            make_storage("reservoir", max_volume="cap", initial_volume=50.0),
            make_output(demand=5.0),
            make_edge("reservoir", "output"),
        )
        parameters = make_parameters(TimeSeriesParameter("cap", [100.0, 30.0, 30.0]))
        results = run(network, parameters, 3)
        assert [r.volumes["reservoir"] for r in results] == pytest.approx([45.0, 40.0, 35.0])
        assert [r.deficits["output"] for r in results] == pytest.approx([0.0, 0.0, 0.0])


class TestParameterDrivenNetworks:
    def test_aggregated_demand(self):
        network = make_network(
            make_input(max_flow=None),
            make_output(demand="demand"),
            make_edge("input", "output"),
        )
        parameters = make_parameters(
            ConstantParameter("area", 4.0),
            ConstantParameter("rate", 3.0),
            AggregatedParameter("demand", ("area", "rate"), agg_func=AggFunc.PRODUCT),
        )
        results = run(network, parameters, 2)
        assert [r.flows["input->output"] for r in results] == pytest.approx([12.0, 12.0])
        assert results[0].parameters["demand"] == 12.0

    def test_time_varying_demand(self):
        network = make_network(make_input(max_flow=20.0), make_output(demand="demand"), make_edge("input", "output"))
        parameters = make_parameters(TimeSeriesParameter("demand", [5.0, 15.0, 25.0]))
        results = run(network, parameters, 3)
        assert [r.flows["input->output"] for r in results] == pytest.approx([5.0, 15.0, 20.0])
        assert [r.deficits["output"] for r in results] == pytest.approx([0.0, 0.0, 5.0])

    def test_control_curve_reads_storage_state(self):
        network = make_network(
            make_storage("reservoir", max_volume=100.0, initial_volume=60.0),
            make_output(demand="release"),
            make_edge("reservoir", "output"),
        )
        parameters = make_parameters(ControlCurveParameter("release", "reservoir", (0.5,), (10.0, 2.0)))
        results = run(network, parameters, 3)
        assert [r.volumes["reservoir"] for r in results] == pytest.approx([50.0, 40.0, 38.0])


class TestAllocation:
    def test_higher_priority_served_first(self):
        network = make_network(
            make_input(max_flow=10.0),
            make_output("farm", demand=8.0, priority=2),
            make_output("city", demand=8.0, priority=1),
            make_edge("input", "farm"),
            make_edge("input", "city"),
        )
        result = run(network, make_parameters(), 1)[0]
        assert result.flows["input->city"] == pytest.approx(8.0)
        assert result.flows["input->farm"] == pytest.approx(2.0)

    def test_cheaper_route_preferred(self):
        network = make_network(
            make_input(max_flow=None),
            make_output(demand=8.0),
            make_edge("input", "output", id="canal", cost=2.0),
            make_edge("input", "output", id="river", cost=1.0, max_flow=5.0),
        )
        result = run(network, make_parameters(), 1)[0]
        assert result.flows["river"] == pytest.approx(5.0)
        assert result.flows["canal"] == pytest.approx(3.0)

    def test_catchment_flow_must_leave(self):
        network = make_network(
            make_catchment(flow=4.0),
            make_link(),
            make_output(demand=None),
            make_edge("catchment", "link"),
            make_edge("link", "output"),
        )
        result = run(network, make_parameters(), 1)[0]
        assert result.flows["link->output"] == pytest.approx(4.0)


class TestInvariants:
    @pytest.fixture
    def basin(self):
        network = make_network(
            make_catchment("runoff", flow="inflow"),
            make_input("aquifer", max_flow=3.0, cost=5.0),
            make_link("confluence"),
            make_storage("reservoir", max_volume=50.0, initial_volume=20.0, min_volume=5.0),
            make_output("city", demand=6.0, priority=1),
            make_output("farm", demand=4.0, priority=2),
            make_output("sea", demand=None),
            make_edge("runoff", "confluence"),
            make_edge("aquifer", "city"),
            make_edge("confluence", "reservoir"),
            make_edge("reservoir", "city"),
            make_edge("reservoir", "farm"),
            make_edge("reservoir", "sea", cost=1.0),
        )
        parameters = make_parameters(TimeSeriesParameter("inflow", [12.0, 0.0, 2.0, 30.0, 0.0, 0.0]))
        return network, parameters

    def test_mass_balance(self, basin):
        network, parameters = basin
        for result in run(network, parameters, 6):
            for node in network.nodes:
                if node.id == "reservoir":
                    continue
                assert result.inflows[node.id] == pytest.approx(result.outflows[node.id], abs=1e-6)
            assert result.inflows["confluence"] == pytest.approx(result.flows["confluence->reservoir"], abs=1e-6)

    def test_storage_change_matches_net_flow(self, basin):
        network, parameters = basin
        previous = 20.0
        for result in run(network, parameters, 6):
            net = result.inflows["reservoir"] - result.outflows["reservoir"]
            assert result.volumes["reservoir"] == pytest.approx(previous + net, abs=1e-4)
            previous = result.volumes["reservoir"]

    def test_storage_within_bounds(self, basin):
        network, parameters = basin
        for result in run(network, parameters, 6):
            assert 5.0 - 1e-6 <= result.volumes["reservoir"] <= 50.0 + 1e-6


class TestAssertionRecorderInRun:
    def test_expected_volumes_pass(self):
        network, parameters = storage_model()
        checker = AssertionRecorder(NodeVolume("storage"), [55.0, 60.0, 65.0])
        Simulation(network, parameters, make_timestepper(3), recorders=[checker]).run()
        assert checker.checked == 3

    def test_mismatch_fails_the_run(self):
        network, parameters = two_node_model()
        checker = AssertionRecorder(EdgeFlow("input->output"), [8.0, 7.0, 8.0])
        sim = Simulation(network, parameters, make_timestepper(3), recorders=[checker])
        with pytest.raises(AssertionError, match="at step 1: expected 7.0"):
            sim.run()
        assert sim.status is RunStatus.FAILED

    def test_rejected_step_leaves_storage_unmoved(self):
        network, parameters = storage_model()
        checker = AssertionRecorder(EdgeFlow("storage->output"), [5.0, 99.0, 5.0])
        sim = Simulation(network, parameters, make_timestepper(3), recorders=[checker])
        with pytest.raises(AssertionError, match="at step 1"):
            sim.run()
        assert sim.summary().steps_completed == 1
        assert network.volumes()["storage"] == pytest.approx(55.0)

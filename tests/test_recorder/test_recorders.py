from datetime import date

import pandas as pd
import pytest

from taqlp.lp import SolverStatus
from taqlp.recorder import (
    AssertionRecorder,
    EdgeFlow,
    MemoryRecorder,
    NodeDeficit,
    NodeInFlow,
    NodeOutFlow,
    NodeVolume,
    ParameterValue,
    Recorder,
)
from taqlp.scenario import ScenarioIndex
from taqlp.simulation import StepResult
from taqlp.time import Timestep


def make_result(index: int, volume: float = 50.0, flow: float = 8.0) -> StepResult:
    return StepResult(
        timestep=Timestep(index=index, date=date(2020, 1, 1 + index)),
        scenario=ScenarioIndex(index=0),
        status=SolverStatus.OPTIMAL,
        objective=float(index),
        flows={"input->storage": flow},
        inflows={"input": flow, "storage": flow},
        outflows={"input": flow, "storage": 0.0},
        deficits={"output": 1.0},
        volumes={"storage": volume},
        parameters={"supply": 10.0},
    )


class TestMetrics:
    @pytest.mark.parametrize(
        ("metric", "expected"),
        [
            (NodeInFlow("storage"), 8.0),
            (NodeOutFlow("storage"), 0.0),
            (NodeVolume("storage"), 50.0),
            (NodeDeficit("output"), 1.0),
            (EdgeFlow("input->storage"), 8.0),
            (ParameterValue("supply"), 10.0),
        ],
    )
    def test_value(self, metric, expected):
        assert metric.value(make_result(0)) == expected

    def test_deficit_of_node_without_demand_is_zero(self):
        assert NodeDeficit("storage").value(make_result(0)) == 0.0

    def test_unknown_node_raises(self):
        with pytest.raises(KeyError):
            NodeVolume("missing").value(make_result(0))

    def test_labels(self):
        assert NodeVolume("storage").label == "storage.volume"
        assert EdgeFlow("input->storage").label == "input->storage"


class TestMemoryRecorder:
    def test_satisfies_recorder_protocol(self):
        assert isinstance(MemoryRecorder(), Recorder)

    def test_keeps_results(self):
        recorder = MemoryRecorder()
        recorder.save(make_result(0))
        recorder.save(make_result(1))
        assert len(recorder) == 2
        assert [r.index for r in recorder.results] == [0, 1]

    def test_series_indexed_by_date(self):
        recorder = MemoryRecorder()
        for i, volume in enumerate([55.0, 60.0, 65.0]):
            recorder.save(make_result(i, volume=volume))
        series = recorder.series(NodeVolume("storage"))
        assert series.name == "storage.volume"
        assert list(series) == [55.0, 60.0, 65.0]
        assert series.index[0] == pd.Timestamp("2020-01-01")
        assert series.index.name == "date"

    def test_frame(self):
        recorder = MemoryRecorder()
        recorder.save(make_result(0, volume=55.0, flow=10.0))
        frame = recorder.frame([NodeVolume("storage"), EdgeFlow("input->storage")])
        assert list(frame.columns) == ["storage.volume", "input->storage"]
        assert frame.iloc[0].tolist() == [55.0, 10.0]

    def test_objective(self):
        recorder = MemoryRecorder()
        recorder.save(make_result(0))
        recorder.save(make_result(1))
        assert recorder.objective().tolist() == [0.0, 1.0]

    def test_empty_series(self):
        assert MemoryRecorder().series(NodeVolume("storage")).empty

    def test_reset(self):
        recorder = MemoryRecorder()
        recorder.save(make_result(0))
        recorder.reset()
        assert len(recorder) == 0


class TestAssertionRecorder:
    def test_satisfies_recorder_protocol(self):
        assert isinstance(AssertionRecorder(NodeVolume("storage"), [50.0]), Recorder)

    def test_passes_within_tolerance(self):
        recorder = AssertionRecorder(NodeVolume("storage"), [50.0, 55.0], tolerance=1e-3)
        recorder.save(make_result(0, volume=50.01))
        recorder.save(make_result(1, volume=55.0))
        assert recorder.checked == 2

    def test_raises_on_mismatch(self):
        recorder = AssertionRecorder(NodeVolume("storage"), [50.0])
        with pytest.raises(AssertionError, match="storage.volume at step 0"):
            recorder.save(make_result(0, volume=60.0))

    def test_raises_when_expected_values_run_out(self):
        recorder = AssertionRecorder(NodeVolume("storage"), [50.0])
        with pytest.raises(AssertionError, match="no expected value for step 1"):
            recorder.save(make_result(1))

    def test_rejects_non_positive_tolerance(self):
        with pytest.raises(ValueError, match="tolerance must be positive"):
            AssertionRecorder(NodeVolume("storage"), [50.0], tolerance=0.0)

    def test_reset(self):
        recorder = AssertionRecorder(NodeVolume("storage"), [50.0])
        recorder.save(make_result(0))
        recorder.reset()
        assert recorder.checked == 0

import io

from rich.console import Console

from deploy_stream.monitor.dashboard import LiveDashboard, PlainPrinter, loss_bar, render_project, status_style
from deploy_stream.pipeline.context import JobStatus, MetricEvent, UpdateBatch


def make_console():
    return Console(file=io.StringIO(), width=100, record=True, color_system=None)


class TestHelpers:
    def test_loss_bar(self):
        assert loss_bar(2.0, 2.0, width=10) == "█" * 10
        assert loss_bar(1.0, 2.0, width=10) == "█" * 5
        assert loss_bar(0.0, 2.0) == ""
        assert loss_bar(1.0, 0.0) == ""

    def test_status_style(self):
        assert "green" in status_style(JobStatus.ACTIVE)
        assert "red" in status_style(JobStatus.FAILED)


class TestRender:
    def test_project_panel(self, store):
        store.begin_session("proj_1")
        store.apply("proj_1", UpdateBatch(
            ("[TRAIN] go", "Epoch 1: Training Loss = 2.5000"), (MetricEvent(1, 2.5),), JobStatus.TRAINING,
        ))
        console = make_console()
        console.print(render_project(store.snapshot("proj_1")))
        text = console.export_text()
        assert "proj_1" in text
        assert "Status: Training" in text
        assert "Epoch 1: Training Loss = 2.5000" in text
        assert "2.5000" in text

    def test_live_dashboard_follows_store(self, store):
        console = make_console()
        with LiveDashboard(store, console=console) as dash:
            assert dash in store._listeners
            store.apply("proj_1", UpdateBatch(("[DEPLOY] push",), (), JobStatus.DEPLOYING))
        assert dash not in store._listeners
        assert "Deploying" in console.export_text()


class TestPlainPrinter:
    def test_prints_lines_and_final_status(self):
        console = make_console()
        printer = PlainPrinter(console=console)
        printer("p1", UpdateBatch(("[TRAIN] a",), (), JobStatus.TRAINING))
        printer("p1", UpdateBatch((), (), JobStatus.ACTIVE, final=True))
        text = console.export_text()
        assert "[p1] [TRAIN] a" in text
        assert "[p1] status=Active" in text

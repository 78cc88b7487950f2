"""Basic test to verify pytest setup."""


def test_import():
    """Test that the main package can be imported."""
    import agent_pipeline

    assert hasattr(agent_pipeline, "__version__")
    assert agent_pipeline.__version__ == "0.1.0"


def test_orchestration_exports():
    """Public orchestration names are importable from the package."""
    from agent_pipeline.orchestration import (
        ExecutionControl,
        StepRunner,
        TaskExecutor,
    )

    assert callable(ExecutionControl)
    assert callable(StepRunner)
    assert callable(TaskExecutor)

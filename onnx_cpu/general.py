import contextlib
import time


class Profiler(contextlib.ContextDecorator):
    """
    Wall-clock profiler for model loading and inference steps.

    Usage:
        @Profiler() decorator or 'with Profiler():' context manager

    Example:
        profiler = Profiler()
        with profiler:
            model.infer(tensors)
        print(f"Inference time: {profiler.elapsed_time * 1000:.2f} ms")
    """

    def __init__(self, accumulated_time=0.0):
        self.accumulated_time = accumulated_time  # total across runs
        self.elapsed_time = 0.0  # last run
        self._start_time = 0.0

    def __enter__(self):
        self._start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.elapsed_time = time.perf_counter() - self._start_time
        self.accumulated_time += self.elapsed_time

    def reset(self):
        self.accumulated_time = 0.0
        self.elapsed_time = 0.0

    def get_avg_time_ms(self, num_operations):
        """Average time per operation in milliseconds."""
        if num_operations > 0:
            return (self.accumulated_time / num_operations) * 1000
        return 0.0

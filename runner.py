"""
tinyeval batch runner
Evaluates independent programs concurrently, one pykka actor per program
Reports come back in submission order, so printed output matches a sequential run
"""

import time
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import pykka

from error_handling import EvaluationError, FatalEvaluationError
from expressions import Expression
from interpreter import TraceRecord, eval_program, format_result_line, format_trace_line
from values import Value


class ProgramReport(NamedTuple):
  """Outcome of one program: either a value or the error that stopped it"""
  name: str
  value: Optional[Value]
  counter: Optional[int]
  trace: Tuple[TraceRecord, ...]
  error: Optional[str] = None
  fatal: bool = False
  timed_out: bool = False

  @property
  def succeeded(self) -> bool:
    return self.error is None

  def lines(self) -> List[str]:
    """Trace lines followed by the result or error line"""
    output = [format_trace_line(record) for record in self.trace]
    if self.succeeded:
      output.append(format_result_line(self.value, self.counter))
    elif self.timed_out:
      output.append(f">>> {self.error}")
    elif self.fatal:
      output.append(f">>> Evaluation aborted: {self.error}")
    else:
      output.append(f">>> Runtime error: {self.error}")
    return output


class ProgramRunner(pykka.ThreadingActor):
  """Actor that evaluates one program and keeps its own trace"""

  # An abandoned evaluation must not keep the process alive
  use_daemon_thread = True

  def __init__(self, name: str, program: Expression, seed: int = 0):
    super().__init__()
    self.name = name
    self.program = program
    self.seed = seed

  def run(self) -> ProgramReport:
    records: List[TraceRecord] = []
    try:
      result = eval_program(self.program, self.seed, trace=records.append)
    except FatalEvaluationError as e:
      return ProgramReport(self.name, None, None, tuple(records), str(e), fatal=True)
    except (EvaluationError, RecursionError) as e:
      return ProgramReport(self.name, None, None, tuple(records), str(e))
    return ProgramReport(self.name, result.value, result.counter, result.trace)


class RunnerRegistry:
  """Registry for the actors started by one batch"""

  def __init__(self):
    self.actors: Dict[str, pykka.ActorRef] = {}

  def register(self, name: str, actor_ref: pykka.ActorRef):
    self.actors[name] = actor_ref

  def stop_all(self, block: bool = True):
    """Stop every actor; with block=False, busy actors stop once their run returns"""
    for actor_ref in self.actors.values():
      if actor_ref.is_alive():
        actor_ref.stop(block=block)
    self.actors.clear()


def _chunks(items: Sequence, size: int) -> List[Sequence]:
  return [items[start:start + size] for start in range(0, len(items), size)]


def timed_out_report(name: str, timeout: float) -> ProgramReport:
  return ProgramReport(name, None, None, (), f"Timed out after {timeout} seconds", timed_out=True)


def run_programs(programs: Sequence[Tuple[str, Expression]], seed: int = 0,
                 workers: Optional[int] = None, timeout: Optional[float] = None) -> List[ProgramReport]:
  """
  Evaluate named programs concurrently.

  At most ``workers`` actors run at once (all of them when None).
  Environments are immutable, so the actors share nothing mutable.

  ``timeout`` bounds the wait for each batch. Programs still running when
  it expires get a timed-out report and their actors are abandoned.
  """
  if workers is not None and workers < 1:
    raise ValueError(f"workers must be at least 1, got {workers}")

  batch_size = workers or max(len(programs), 1)
  reports: List[ProgramReport] = []

  for batch in _chunks(list(programs), batch_size):
    registry = RunnerRegistry()
    abandoned = False
    try:
      futures = []
      for index, (name, program) in enumerate(batch):
        actor_ref = ProgramRunner.start(name, program, seed)
        registry.register(f"{index}:{name}", actor_ref)
        futures.append((name, actor_ref.proxy().run()))

      deadline = None if timeout is None else time.monotonic() + timeout
      for name, future in futures:
        remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
        try:
          reports.append(future.get(timeout=remaining))
        except pykka.Timeout:
          abandoned = True
          reports.append(timed_out_report(name, timeout))
    finally:
      registry.stop_all(block=not abandoned)

  return reports

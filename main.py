"""
tinyeval - Main Entry Point
Runs sample programs or program text and prints the evaluation trace
"""

import sys
import argparse
import os
from typing import List, Optional

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import EvaluationError, FatalEvaluationError, SyntaxReadError
from expressions import Expression, pretty_print_expression
from interpreter import create_interpreter, discard_trace, format_result_line, print_trace
from parsing import create_reader
from programs import DEFAULT_PROGRAM, SAMPLE_PROGRAMS, describe_program, get_program
from runner import run_programs


VERSION = "tinyeval 0.1.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='tinyeval',
      description='Tree-walking evaluator with a step-by-step execution trace',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s                        # Run the default sample program (p6)
  %(prog)s -p p4                  # Run sample program p4
  %(prog)s --all                  # Run every sample program concurrently
  %(prog)s script.tev             # Read and run a program file
  %(prog)s -e "let x = 3 in x*x"  # Run program text
  %(prog)s -i                     # Interactive mode
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='program file to read and run'
  )

  parser.add_argument(
      '-e', '--expr',
      help='program text to read and run'
  )

  parser.add_argument(
      '-p', '--program',
      choices=list(SAMPLE_PROGRAMS),
      help=f'sample program to run (default: {DEFAULT_PROGRAM})'
  )

  parser.add_argument(
      '--all',
      action='store_true',
      help='run every sample program concurrently and print the reports in order'
  )

  parser.add_argument(
      '--workers',
      type=int,
      default=None,
      help='maximum number of programs evaluated at once with --all'
  )

  parser.add_argument(
      '--list',
      action='store_true',
      help='list the sample programs'
  )

  parser.add_argument(
      '--seed',
      type=int,
      default=0,
      help='initial step counter value (default: 0)'
  )

  parser.add_argument(
      '-q', '--quiet',
      action='store_true',
      help='print only the result line, not the trace'
  )

  parser.add_argument(
      '--show-tree',
      action='store_true',
      help='print the expression tree before running it'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='dump every environment built by let and function calls'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='start interactive mode'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def run_expression(expression: Expression, seed: int = 0, quiet: bool = False,
                   debug: bool = False, show_tree: bool = False) -> bool:
  """Run one expression, printing trace and result. Returns True on success."""
  if show_tree:
    print(pretty_print_expression(expression), end='')

  interpreter = create_interpreter(debug=debug, trace=discard_trace if quiet else print_trace)
  try:
    result = interpreter.run(expression, seed)
  except FatalEvaluationError as e:
    print(f"Evaluation aborted: {e}")
    return False
  except EvaluationError as e:
    print(f"Runtime error: {e}")
    return False
  except RecursionError:
    print("Evaluation aborted: recursion too deep (program nests or recurses too far)")
    return False

  print(format_result_line(result.value, result.counter))
  return True


def list_programs() -> None:
  print("Sample programs:")
  for name in SAMPLE_PROGRAMS:
    marker = " (default)" if name == DEFAULT_PROGRAM else ""
    print(f"  {name}{marker}: {describe_program(name)}")


def run_all_programs(seed: int = 0, quiet: bool = False, workers: Optional[int] = None) -> bool:
  """Run every sample program concurrently; output is printed in catalog order"""
  programs = [(name, get_program(name)) for name in SAMPLE_PROGRAMS]
  reports = run_programs(programs, seed=seed, workers=workers)

  for report in reports:
    print(f"=== {report.name}")
    lines = report.lines()
    for line in (lines[-1:] if quiet else lines):
      print(line)

  return all(report.succeeded for report in reports)


def read_source(reader, script: Optional[str], text: Optional[str]) -> Optional[Expression]:
  """Read the program given on the command line, printing any syntax error"""
  try:
    if text is not None:
      return reader.read_string(text, "<expr>")
    return reader.read_file(script)
  except SyntaxReadError as e:
    print(str(e), end='' if str(e).endswith('\n') else '\n')
    return None


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.tinyeval_history")
  try:
    readline.read_history_file(history_file)
  except (FileNotFoundError, PermissionError, OSError):
    pass  # First time, no history yet, or permission denied

  readline.set_history_length(1000)

  completions = [
      "let", "in", "if", "then", "else", "fun", "true", "false",
      ":help", ":programs", ":run", ":trace", ":tree", ":quit", "exit",
  ] + list(SAMPLE_PROGRAMS)

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def print_repl_help() -> None:
  print("Enter an expression to evaluate it, e.g.  let x = 3 in x * x")
  print("Commands:")
  print("  :programs          list the sample programs")
  print("  :run NAME          run a sample program")
  print("  :trace on|off      show or hide the trace lines")
  print("  :tree on|off       show or hide the expression tree")
  print("  :help              show this help")
  print("  :quit, exit        leave interactive mode")


def run_interactive_mode(seed: int = 0, quiet: bool = False, debug: bool = False,
                         input_func=input) -> None:
  """Read one expression per line and evaluate it"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if debug:
    print("Debug mode enabled")
  print()

  if input_func is input:
    setup_readline()

  reader = create_reader()
  show_trace = not quiet
  show_tree = False

  while True:
    try:
      line = input_func("tinyeval> ").strip()
    except (EOFError, KeyboardInterrupt):
      print()
      break

    if not line:
      continue
    if line in ("exit", ":quit", ":q"):
      break

    if line.startswith(":"):
      command, _, argument = line.partition(" ")
      argument = argument.strip()
      if command == ":help":
        print_repl_help()
      elif command == ":programs":
        list_programs()
      elif command == ":run":
        if argument not in SAMPLE_PROGRAMS:
          print(f"Unknown sample program '{argument}'. Try :programs")
          continue
        run_expression(get_program(argument), seed, not show_trace, debug, show_tree)
      elif command == ":trace" and argument in ("on", "off"):
        show_trace = argument == "on"
      elif command == ":tree" and argument in ("on", "off"):
        show_tree = argument == "on"
      else:
        print(f"Unknown command: {line}. Type :help for commands")
      continue

    try:
      expression = reader.read_string(line, "<repl>")
    except SyntaxReadError as e:
      print(str(e), end='' if str(e).endswith('\n') else '\n')
      continue
    run_expression(expression, seed, not show_trace, debug, show_tree)

  print("Goodbye!")


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point"""
  parser = create_arg_parser()
  args = parser.parse_args(argv)

  if args.script and args.expr is not None:
    parser.error("give either a script file or --expr, not both")
  if (args.script or args.expr is not None) and args.program:
    parser.error("--program cannot be combined with a script or --expr")
  if args.workers is not None:
    if not args.all:
      parser.error("--workers only applies to --all")
    if args.workers < 1:
      parser.error(f"--workers must be at least 1, got {args.workers}")

  if args.list:
    list_programs()
    return 0

  if args.interactive:
    run_interactive_mode(args.seed, args.quiet, args.debug)
    return 0

  if args.all:
    ok = run_all_programs(args.seed, args.quiet, args.workers)
    return 0 if ok else 1

  if args.script or args.expr is not None:
    reader = create_reader()
    expression = read_source(reader, args.script, args.expr)
    if expression is None:
      return 1
  else:
    expression = get_program(args.program or DEFAULT_PROGRAM)

  ok = run_expression(expression, args.seed, args.quiet, args.debug, args.show_tree)
  return 0 if ok else 1


if __name__ == "__main__":
  sys.exit(main())

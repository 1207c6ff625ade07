"""
Utilities module for the Oberon-07 front-end
Contains tracer factories and source loading helpers shared by the stages
"""

import sys
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Union


Tracer = Callable[[str], None]


# ==================== TRACERS ====================

def make_print_tracer(
  stream: Optional[TextIO] = None,
  prefix: str = ""
) -> Tracer:
  """
  Build a tracer that prints each message on its own line

  Args:
    stream: Output stream (defaults to sys.stderr at call time)
    prefix: Text put in front of every message, e.g. "[parser] "

  Returns:
    Callable taking one message string
  """
  def tracer(message: str) -> None:
    print(f"{prefix}{message}", file=stream if stream is not None else sys.stderr)

  return tracer


def make_collecting_tracer(sink: List[str]) -> Tracer:
  """
  Build a tracer that appends every message to a list

  Args:
    sink: List receiving the messages

  Returns:
    Callable taking one message string

  Examples:
    messages = []
    parse(tokens, tracer=make_collecting_tracer(messages))
  """
  return sink.append


# ==================== SOURCE LOADING ====================

def read_source(path: Union[str, Path]) -> bytes:
  """
  Read a whole Oberon source file as raw bytes

  Args:
    path: File to read

  Returns:
    The complete file contents
  """
  return Path(path).read_bytes()


def decode_source(source: Union[bytes, bytearray, str]) -> str:
  """
  Turn a source buffer into text with one character per input byte

  Latin-1 maps every byte value to exactly one character, so line and
  column counting stays byte-accurate.

  Args:
    source: Raw bytes or already-decoded text

  Returns:
    Source text
  """
  if isinstance(source, (bytes, bytearray)):
    return bytes(source).decode('latin-1')
  return source

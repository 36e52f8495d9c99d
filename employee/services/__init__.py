"""Instruction compilation, tool orchestration and usage metering for digital employees."""

"""Test package for the Dual N-Back Trainer.

Core tests drive the trial engine with a fake clock, so no test waits on
real time. The UI smoke tests run headlessly using pygame's dummy video
driver. To run these tests, execute ``pytest`` from the project root.
"""

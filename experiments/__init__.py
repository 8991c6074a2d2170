"""
Experiment scripts for register auditing.

1. exp_register_audit.py - Scan a register, export it and verify signatures

Running Experiments:
-------------------
From the project root:

    python experiments/exp_register_audit.py --image data/register.png --enroll
    python experiments/exp_register_audit.py --image data/register.png --expected data/register.txt
"""

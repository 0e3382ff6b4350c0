#!/usr/bin/env python3
"""
Test runner script for metaomics_toolkit

Runs the suites in pipeline order (load, normalize, combine, analyse, export)
so the first failing stage is the first one reported. Pass stage names to run
only those suites, e.g. ``python run_tests.py normalization expression``.
"""

import subprocess
import sys
import os


PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))

# Suite name -> description, in pipeline order
PIPELINE_SUITES = [
    ("basic", "Package Import"),
    ("data_import", "Loader"),
    ("preprocessing", "Count Matrix Preprocessing"),
    ("validation", "Sample Pairing Validation"),
    ("normalization", "Length / Depth / Marker Normalization"),
    ("expression", "Expression Combiner"),
    ("statistical_analysis", "Expression Statistics"),
    ("visualization", "Plots"),
    ("export", "Export and Configuration"),
    ("integration", "End-to-End Workflow"),
]


def run_suite(name, description):
    """Run one test module with pytest and return (passed, exit code)"""
    test_file = os.path.join("tests", f"test_{name}.py")

    print(f"\n=== {description.upper()} ({test_file}) ===")

    result = subprocess.run(
        [sys.executable, "-m", "pytest", test_file, "-q", "--tb=short"],
        cwd=PROJECT_ROOT,
        check=False,
    )
    return result.returncode == 0, result.returncode


def main(argv=None):
    """Run the selected suites and print a summary"""
    selected = argv if argv else [name for name, _ in PIPELINE_SUITES]

    known = dict(PIPELINE_SUITES)
    unknown = [name for name in selected if name not in known]
    if unknown:
        print(f"Unknown suites: {unknown}. Available: {list(known)}")
        return 2

    print("Metaomics Toolkit Test Suite")

    results = []
    for name in selected:
        passed, exit_code = run_suite(name, known[name])
        results.append((name, passed, exit_code))

    print("\n=== TEST SUMMARY ===")
    for name, passed, exit_code in results:
        status = "✓ PASSED" if passed else f"FAILED (exit code {exit_code})"
        print(f"  {known[name]:<40} {status}")

    failed = [name for name, passed, _ in results if not passed]
    print(f"\nOverall: {len(results) - len(failed)}/{len(results)} suites passed")
    if failed:
        print(f"First failing stage: {known[failed[0]]}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

"""
doit tasks for testing effinfer.
Run with: doit
"""

# Python test files
PYTHON_TESTS = [
    'tests/test_annotations.py',
    'tests/test_relative.py',
    'tests/test_conformance.py',
    'tests/test_dispatch.py',
    'tests/test_invocation.py',
    'tests/test_latent.py',
    'tests/test_exceptions_domain.py',
    'tests/test_checker.py',
]

SOURCES = [
    'src/effinfer/annotations.py',
    'src/effinfer/checker.py',
    'src/effinfer/domain.py',
    'src/effinfer/errors.py',
    'src/effinfer/infer.py',
    'src/effinfer/lattice.py',
    'src/effinfer/relative.py',
    'src/effinfer/reporter.py',
    'src/effinfer/symbols.py',
    'src/effinfer/trees.py',
    'src/effinfer/domains/effect_set.py',
    'src/effinfer/domains/exceptions.py',
]

def task_test_python():
    """Run Python tests"""
    def run_python_tests():
        import pytest
        return pytest.main(['-v'] + PYTHON_TESTS) == 0

    return {
        'actions': [run_python_tests],
        'file_dep': PYTHON_TESTS + SOURCES + ['tests/support.py'],
        'verbosity': 2,
    }

DOMAIN_TESTS = [
    'tests/test_exceptions_domain.py',
]

DOMAIN_SOURCES = [
    'src/effinfer/domain.py',
    'src/effinfer/domains/effect_set.py',
    'src/effinfer/domains/exceptions.py',
]

def task_test_domains():
    """Run the reference domain tests only"""
    def run_domain_tests():
        import pytest
        return pytest.main(['-v'] + DOMAIN_TESTS) == 0

    return {
        'actions': [run_domain_tests],
        'file_dep': DOMAIN_TESTS + DOMAIN_SOURCES + ['tests/support.py'],
        'verbosity': 2,
    }

def task_test():
    """Run all tests"""
    return {
        'actions': None,
        'task_dep': ['test_python'],
    }

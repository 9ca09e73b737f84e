"""Course grading portal backend."""

"""Demo users API used as a load test target."""

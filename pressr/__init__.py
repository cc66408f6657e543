"""pressr: HTTP load testing with bounded concurrency."""

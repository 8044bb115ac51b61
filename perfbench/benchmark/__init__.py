"""Concurrent benchmark runner, command-line options, logging and fake-data generators."""
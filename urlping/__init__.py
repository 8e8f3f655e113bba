"""HTTP liveness probing engine.

Runs bounded-concurrency HEAD/GET probes against a list of URLs over
several rounds, with rate limiting, retries and cooperative cancellation.

Key modules:
    models      -- ProbeResult, Task, AggregateStats, StatsSnapshot dataclasses
    config      -- ProbeConfig settings and validation
    cancel      -- CancelToken shared by every blocking call
    prober      -- BaseProber, RequestsProber, CurlProber
    factory     -- ProberFactory for the configured HTTP backend
    backoff     -- BackoffStrategy for exponential retry delays
    retry       -- RetryPolicy wrapping a prober with bounded retries
    rate_limiter-- RateLimiter ticker-fed token bucket
    admission   -- AdmissionGate counting permits
    dispatcher  -- RoundScheduler spawning one task per (round, URL)
    metrics     -- ResultAggregator collecting results and statistics
    engine      -- run_probes() wiring everything together
"""

"""
TDOA positioning demo configuration.
"""

# Filter configuration (fields of TdoaEKFConfig)
FILTER_CONFIG = {
    "dt": 0.016,                  # Predict period (s)
    "measurement_std": 0.15,      # Range-difference noise std (m)
    "max_anchors": 8,             # Anchor registry capacity
    "min_anchor_distance_m": 1e-6,
    "propagate_state": False,     # Predict moves covariance only
    "process_noise_std": 0.0,
}

# Anchor configuration (index -> x, y, z in meters); empty uses factory layout
ANCHOR_CONFIG = {
    0: (4.628, 0.600, 1.312),
    1: (4.628, 3.810, 1.297),
    2: (0.043, 4.210, 1.302),
    3: (0.123, 1.673, 1.903),
}

# Estimator worker configuration (fields of EstimatorWorkerConfig)
WORKER_CONFIG = {
    "predict_period_s": 0.016,
    "max_queue_size": 256,
    "stop_timeout_s": 1.0,
}

# Synthetic agent
SIMULATION_CONFIG = {
    "center": (2.0, 2.5, 1.3),    # Circle center (m)
    "radius_m": 0.8,
    "period_s": 30.0,             # Seconds per lap
    "sample_rate_hz": 100.0,      # TDOA samples per second
    "noise_std_m": 0.05,
    "seed": 42,
}

# Output configuration
OUTPUT_CONFIG = {
    "print_interval": 100,        # Print every 100 samples
}

# Logging configuration
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

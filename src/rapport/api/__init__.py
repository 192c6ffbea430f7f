"""HTTP API for the rapport relationship tracker."""

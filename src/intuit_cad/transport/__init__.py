"""HTTP transport for the Customer Account Data API."""

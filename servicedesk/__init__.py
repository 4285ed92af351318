"""IT service desk notification and delivery engine."""

class ConfigurationError(ValueError):
	pass

class ConvergenceError(RuntimeError):
	def __init__(self, message, last_error):
		super().__init__(message)
		self.last_error = last_error

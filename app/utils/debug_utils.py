import traceback
import time
import inspect
from functools import wraps

from pydantic import BaseModel

def _summarize(value):
    """Compact representation of an argument for debug logs"""
    if isinstance(value, BaseModel):
        return f"{type(value).__name__}(...)"
    if isinstance(value, (list, tuple)) and len(value) > 5:
        return f"{type(value).__name__}(len={len(value)})"
    return value

def debug_timing(func):
    """Decorator to measure and log function execution time"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        end_time = time.time()

        # Get the logger for the module where the function is defined
        from app.utils.logging_config import get_logger
        logger = get_logger(func.__module__)

        logger.debug(f"Function {func.__name__} took {end_time - start_time:.4f} seconds to execute")
        return result
    return wrapper

def debug_exception(func):
    """Decorator to provide detailed exception information"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            # Get the logger for the module where the function is defined
            from app.utils.logging_config import get_logger
            logger = get_logger(func.__module__)

            # Get the full stack trace
            stack_trace = traceback.format_exc()

            # Log the exception with detailed information
            logger.error(f"Exception in {func.__name__}: {str(e)}")
            logger.error(f"Stack trace:\n{stack_trace}")

            # Re-raise the exception
            raise
    return wrapper

def debug_function_args(func):
    """Decorator to log function arguments"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        # Get the logger for the module where the function is defined
        from app.utils.logging_config import get_logger
        logger = get_logger(func.__module__)

        # Get argument names
        arg_names = inspect.getfullargspec(func).args

        # Format positional arguments (excluding 'self' for methods)
        pos_args = args[1:] if arg_names and arg_names[0] == 'self' else args
        pos_arg_names = arg_names[1:] if arg_names and arg_names[0] == 'self' else arg_names

        # Create a dictionary of argument names and values
        arg_values = {name: value for name, value in zip(pos_arg_names, pos_args)}
        arg_values.update(kwargs)

        # Models and long sequences are summarized, everything else is logged as-is
        formatted_args = {name: _summarize(value) for name, value in arg_values.items()}

        logger.debug(f"Calling {func.__name__} with args: {formatted_args}")
        return func(*args, **kwargs)
    return wrapper

"""
Compilation of stacks to Pulumi resources.

StackCompiler requires pulumi and pulumi_aws and is imported lazily:

    from querystack.compilation.stack_compiler import StackCompiler
"""

from querystack.compilation.compiler import CompilationError, CompiledStack

__all__ = [
    "CompilationError",
    "CompiledStack",
]

from typing import List

from .context import ExecutionContext


class ContextInspector:
    """Lists the names visible from an execution context."""

    def extract(self, context: ExecutionContext, objpath: str = "") -> List[str]:
        """
        Extract names for console autocompletion.

        Args:
            context: Context to inspect
            objpath: Expression naming an object, or blank for the context itself

        Returns:
            Local names then global names when objpath is blank, otherwise the
            attribute names of the evaluated object
        """
        if objpath.strip():
            return sorted(dir(context.evaluate(objpath)))

        global_ns, local_ns = context.namespace()
        local_names = sorted(local_ns)
        seen = set(local_names)
        global_names = sorted(name for name in global_ns if name not in seen)
        return local_names + global_names

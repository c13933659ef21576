"""Declaring services whose methods can be called remotely."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MethodDescriptor:
    """Describes one remotely callable method."""

    name: str
    request_type: type
    response_type: type


def rpc_method(request_type, response_type):
    """Mark a service method as remotely callable with the given message types."""

    def decorate(func):
        func.__rpc_method__ = MethodDescriptor(func.__name__, request_type, response_type)
        return func

    return decorate


class Service:
    """Base class for services; subclasses declare methods with ``rpc_method``.

    Handlers are called as ``handler(controller, request, response, done)``.
    """

    service_name: str | None = None

    @property
    def name(self) -> str:
        return self.service_name or type(self).__name__

    def methods(self) -> dict[str, MethodDescriptor]:
        """Return the remotely callable methods in declaration order."""
        found: dict[str, MethodDescriptor] = {}
        for klass in reversed(type(self).__mro__):
            for attribute in vars(klass).values():
                descriptor = getattr(attribute, "__rpc_method__", None)
                if isinstance(descriptor, MethodDescriptor):
                    found[descriptor.name] = descriptor
        return found

    def call_method(self, method, controller, request, response, done) -> None:
        """Invoke ``method`` (a descriptor or its name) on this service."""
        name = method.name if isinstance(method, MethodDescriptor) else method
        if name not in self.methods():
            raise KeyError(f"{self.name}.{name} is not exist!")
        getattr(self, name)(controller, request, response, done)
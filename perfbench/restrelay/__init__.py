"""Actions of a chained REST relay node, their helpers and a Kubernetes manifest generator."""